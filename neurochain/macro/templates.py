"""
Per-intent DSL templates.

Each renderer takes the instruction text (wrapping quotes already removed)
and a list to which it appends degradation notes, and returns DSL source.
Renderers never raise: a missing entity falls back to a safe default.
"""

import re
from typing import Callable, Dict, List

from .extract import (
    IDENT, all_quoted, concat_expr, find_print_tail, find_target, first_quoted,
    is_identifier, is_number, loop_count, loop_message, mentions_print,
    normalize_condition, normalize_expr, parse_rhs, parse_var_expr, quote,
    sanitize_text, second_assignment, split_terms, strip_wrapping_quotes,
)
from .intents import COMMENT_INSTRUCTION_RE, WHEN_FORM_RE, Intent

LOOP_MIN = 1
LOOP_MAX = 12

BRANCH_VERBS = r"(?:say|print|output|show|display|echo)"

Renderer = Callable[[str, List[str]], str]


def clamp_count(n: int) -> int:
    return max(LOOP_MIN, min(LOOP_MAX, n))


def neuro_line(message: str) -> str:
    return f"neuro {quote(message)}"


def echo_line(text: str) -> str:
    """Safe echo of an instruction."""
    return neuro_line(strip_wrapping_quotes(text))


def render_loop(text: str, notes: List[str]) -> str:
    message = loop_message(text)
    requested = loop_count(text)
    if requested is None:
        notes.append("loop count missing, defaulted to 1")
        requested = 1
    count = clamp_count(requested)
    if count != requested:
        notes.append(f"loop count {requested} clamped to {count}")
    return "\n".join(neuro_line(message) for _ in range(count))


def _branch_clause(part: str):
    """`score >= 90 say Excellent` -> (condition, message) or None."""
    part = part.strip().rstrip(",;").strip()
    m = re.match(rf"^(?P<cond>.+?)\s*[,:]?\s*(?:then\s+)?\b{BRANCH_VERBS}\s+(?P<msg>.+?)$", part, re.I | re.S)
    if not m:
        m = re.match(r"^(?P<cond>.+?)\s*[,:]\s*(?:then\s+)?(?P<msg>.+?)$", part, re.S)
    if not m:
        return None
    cond = normalize_condition(m.group("cond"))
    msg = sanitize_text(m.group("msg"))
    if not cond:
        return None
    return cond, msg


def render_branch(text: str, notes: List[str]) -> str:
    m = WHEN_FORM_RE.match(text.strip())
    if m:
        shown, flag, value = m.groups()
        rhs = value if is_number(value) or value.lower() in ("true", "false", "none", "null") else quote(value)
        return f"if {flag} == {rhs}:\n    neuro {shown}"

    t = re.sub(r"\botherwise\b", "else", text, flags=re.I)
    t = re.sub(r"\belse\s+if\b", "elif", t, flags=re.I)
    m = re.match(
        rf"^(?P<head>.+?)(?:[,;]?\s*\belse\b[,:]?\s*(?:then\s+)?(?:{BRANCH_VERBS}\s+)?(?P<else>.+))?$",
        t.strip(), re.I | re.S,
    )
    head = m.group("head").strip() if m else t.strip()
    else_msg = sanitize_text(m.group("else")) if m and m.group("else") else None

    if not re.match(r"^if\s", head, re.I):
        notes.append("branch instruction without leading 'if', echoed")
        return echo_line(text)

    head = re.sub(r"^if\s+", "", head, flags=re.I)
    lines = []
    for idx, part in enumerate(p for p in re.split(r"[,;]?\s*\belif\b\s*", head, flags=re.I) if p.strip()):
        clause = _branch_clause(part)
        if clause is None:
            notes.append(f"could not split branch clause {part.strip()!r}, echoed")
            return echo_line(text)
        cond, msg = clause
        lines.append(f"{'if' if idx == 0 else 'elif'} {cond}:")
        lines.append(f"    {neuro_line(msg)}")
    if not lines:
        return echo_line(text)
    if else_msg:
        lines.append("else:")
        lines.append(f"    {neuro_line(else_msg)}")
    return "\n".join(lines)


def _print_lines(text: str, var: str, wants_print: bool) -> List[str]:
    if not wants_print:
        return []
    tail = find_print_tail(text, var)
    return [f"neuro {tail or var}"]


def render_arith(text: str, notes: List[str]) -> str:
    # Calculate (a + b) * 2 and store in r
    m = re.search(rf"calculate\s*\(+\s*([^)]+?)\s*\)+\s*\*\s*(\d+)\s*and\s*store\s*in\s+({IDENT})", text, re.I)
    if m:
        lines = [f"set {m.group(3)} = ({normalize_expr(m.group(1))}) * {m.group(2)}"]
        lines += _print_lines(text, m.group(3), mentions_print(text))
        return "\n".join(lines)

    # Subtract y from x, divide by 4, store in q
    m = re.search(rf"subtract\s+(\w+(?:\.\d+)?)\s+from\s+(\w+(?:\.\d+)?)", text, re.I)
    if m:
        rhs = f"{m.group(2)} - {m.group(1)}"
        div = re.search(r"divide\s+by\s+(\d+(?:\.\d+)?)", text, re.I)
        if div and div.group(1) != "1":
            rhs = f"({rhs}) / {div.group(1)}"
        target, found = find_target(text)
        if not found:
            notes.append("arithmetic target missing, defaulted to result")
        lines = [f"set {target} = {rhs}"]
        lines += _print_lines(text, target, mentions_print(text) or not found)
        return "\n".join(lines)

    parsed = parse_var_expr(text)
    if parsed:
        var, expr, wants_print = parsed
        return "\n".join([f"set {var} = {normalize_expr(expr)}"] + _print_lines(text, var, wants_print))

    # add 3 and 4 / multiply 6 by 7 / divide 10 by 2 / calculate 2 * (3 + 4)
    operand = r"(-?\d+(?:\.\d+)?|[A-Za-z_]\w*)"
    verb_forms = [
        (rf"\badd\s+{operand}\s+(?:and|to|plus)\s+{operand}", "{0} + {1}"),
        (rf"\bmultiply\s+{operand}\s+(?:by|and|with)\s+{operand}", "{0} * {1}"),
        (rf"\bdivide\s+{operand}\s+by\s+{operand}", "{0} / {1}"),
        (rf"\bsum\s+(?:of\s+)?{operand}\s+and\s+{operand}", "{0} + {1}"),
    ]
    expr = None
    for pattern, shape in verb_forms:
        m = re.search(pattern, text, re.I)
        if m:
            expr = shape.format(m.group(1), m.group(2))
            break
    if expr is None:
        m = re.search(r"\b(?:calculate|compute|what\s+is)\s+([-\w\s.()+*/%]+?)(?:\s+(?:and|then)\b|[,?]|$)", text, re.I)
        if m and re.search(r"[-+*/%]", m.group(1)):
            expr = normalize_expr(m.group(1))
    if expr is not None:
        target, found = find_target(text)
        if not found:
            notes.append("arithmetic target missing, defaulted to result")
        lines = [f"set {target} = {expr}"]
        lines += _print_lines(text, target, mentions_print(text) or not found)
        return "\n".join(lines)

    return render_set_var(text, notes)


def render_concat(text: str, notes: List[str]) -> str:
    # print 'X' + var / print a + ' ' + b / join title + ': ' + body
    m = re.search(r"\b(?:print|join|output|echo|show)\s+(.+\+.+)$", text, re.I)
    if m and not re.search(r"\b(?:set|create|store)\s", text, re.I):
        terms = split_terms(m.group(1).strip().rstrip("."))
        if len(terms) >= 2:
            return f"neuro {concat_expr(terms)}"

    target, found = find_target(text)

    # concatenate name and score ... store in result
    m = re.match(rf"^\s*(?:concatenate|concat|combine|join)\s+({IDENT})\s+(?:and\s+|with\s+)?({IDENT})\b", text, re.I)
    if m and is_identifier(m.group(1)) and is_identifier(m.group(2)):
        rhs = f"{m.group(1)} + {m.group(2)}"
        if not found:
            return f"neuro {rhs}"
        lines = [f"set {target} = {rhs}"]
        if mentions_print(text):
            lines.append(f"neuro {target}")
        return "\n".join(lines)

    quoted = all_quoted(text)
    if len(quoted) >= 2:
        sep = ' + " " + ' if re.search(r"\bwith\s+a\s+space\b", text, re.I) else " + "
        rhs = sep.join(quote(q) for q in quoted[:2])
        if not found:
            return f"neuro {rhs}"
        lines = [f"set {target} = {rhs}"]
        if mentions_print(text):
            lines.append(f"neuro {target}")
        return "\n".join(lines)

    if len(quoted) == 1:
        notes.append("only one concatenation operand found")
        lines = [f"set {target} = {quote(quoted[0])}"]
        if mentions_print(text) or not found:
            lines.append(f"neuro {target}")
        return "\n".join(lines)

    return render_set_var(text, notes)


def render_set_var(text: str, notes: List[str]) -> str:
    if COMMENT_INSTRUCTION_RE.search(text) and not re.search(r"\b(?:set|create|store)\s", text, re.I):
        return render_doc_print(text, notes)

    parsed = parse_var_expr(text)
    if parsed is None:
        notes.append("no assignment found, echoed")
        return echo_line(text)

    var, expr, wants_print = parsed
    lines = [f"set {var} = {normalize_expr(expr)}"]
    extra = second_assignment(text, var)
    if extra:
        lines.append(f"set {extra[0]} = {normalize_expr(extra[1])}")
    lines += _print_lines(text, var, wants_print)
    return "\n".join(lines)


def _comment_marker(text: str) -> str:
    m = re.search(r"\busing\s+(//|#)", text, re.I)
    if m:
        return m.group(1)
    positions = [(text.find(mark), mark) for mark in ("//", "#") if mark in text]
    return min(positions)[1] if positions else "#"


def _comment_text(text: str):
    comment = first_quoted(text)
    if comment is None:
        m = re.search(r"\bcomment\b\s+(?:that\s+says\s+|says\s+)?(.+)", text, re.I)
        comment = m.group(1) if m else None
    if comment is None:
        return None
    msg = strip_wrapping_quotes(comment)
    msg = re.sub(r"^using\s+(?://|#)\s*(?:that\s+says\s+|says\s+)?", "", msg, flags=re.I)
    msg = re.sub(r"\busing\s+(?://|#).*$", "", msg, flags=re.I)
    msg = re.sub(rf",?\s+(?:and\s+|then\s+)+(?:print|say|output|echo|show|display)\b.*$", "", msg, flags=re.I)
    msg = msg.strip()
    for marker in ("//", "#"):
        if msg.startswith(marker):
            msg = msg[len(marker):].strip()
    return msg or None


def render_doc_print(text: str, notes: List[str]) -> str:
    low = text.strip().lower()

    # Format Hello and World with a comma
    m = re.match(r"^format\s+(.+?)\s+and\s+(.+?)\s+with\s+a\s+comma\s*[.!?…]*\s*$", text.strip(), re.I)
    if m:
        a, b = sanitize_text(m.group(1)), sanitize_text(m.group(2))
        if a and b:
            return neuro_line(f"{a}, {b}")

    m = re.match(r"^say\s+the\s+number\s+(-?\d+(?:\.\d+)?)\b", text.strip(), re.I)
    if m:
        return neuro_line(m.group(1))

    for pattern in (rf"\bvalue\s+of\s+({IDENT})\b", rf"\bthe\s+({IDENT})\s+value\b",
                    rf"^(?:display|show)\s+({IDENT})\s*$"):
        m = re.search(pattern, text.strip(), re.I)
        if m and is_identifier(m.group(1)):
            return f"neuro {m.group(1)}"

    lines = []
    if COMMENT_INSTRUCTION_RE.search(text) or re.search(r"\bcomment\b", low):
        comment = _comment_text(text)
        if comment:
            lines.append(f"{_comment_marker(text)} {comment}")
        else:
            notes.append("comment text missing")

    m = re.search(r"\b(?:and\s+)?(?:print|say|output|echo)\s+(.+)$", text, re.I)
    if m:
        payload = sanitize_text(m.group(1))
        if payload:
            lines.append(f"neuro {payload}" if is_identifier(payload) else neuro_line(payload))

    if lines:
        return "\n".join(lines)
    return echo_line(text)


def render_role_flag(text: str, notes: List[str]) -> str:
    value = first_quoted(text)
    if value is None:
        m = re.search(r"\brole\s*(?:=|\bto\b|\bis\b|\bas\b)?\s*([A-Za-z_]\w*)", text, re.I)
        if m and m.group(1).lower() not in ("to", "is", "as"):
            value = m.group(1)
    if value is None:
        m = re.search(r"\b(?:to|as|is)\s+([A-Za-z_]\w*)\s*$", text.strip(), re.I)
        value = m.group(1) if m else None
    if value is None:
        notes.append("role value missing, defaulted to user")
        value = "user"
    rhs = parse_rhs(value)
    if is_identifier(rhs):
        rhs = quote(rhs)
    return f"set role = {rhs}"


def render_ai_bridge(text: str, notes: List[str]) -> str:
    return echo_line(text)


def render_unknown(text: str, notes: List[str]) -> str:
    return echo_line(text)


RENDERERS: Dict[Intent, Renderer] = {
    Intent.LOOP: render_loop,
    Intent.BRANCH: render_branch,
    Intent.ARITH: render_arith,
    Intent.CONCAT: render_concat,
    Intent.ROLE_FLAG: render_role_flag,
    Intent.AI_BRIDGE: render_ai_bridge,
    Intent.DOC_PRINT: render_doc_print,
    Intent.SET_VAR: render_set_var,
    Intent.UNKNOWN: render_unknown,
}


def render(intent: Intent, text: str, notes: List[str]) -> str:
    """DSL source for an instruction under the given intent."""
    body = strip_wrapping_quotes(text)
    dsl = RENDERERS[intent](body, notes)
    if not dsl.strip():
        notes.append("empty template output, echoed")
        return echo_line(body)
    return dsl
