"""
Entity extraction helpers for macro instructions.

All helpers are pure functions over the instruction text so every rule can
be tested on its own.
"""

import re
from typing import List, Optional, Tuple

IDENT = r"[A-Za-z_]\w*"
IDENT_RE = re.compile(rf"^{IDENT}$")
NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
QUOTED_RE = re.compile(r"'([^']+)'|\"([^\"]+)\"")
LITERAL_WORDS = {"true", "false", "none", "null"}

WORD_NUMBERS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}
MULTIPLIERS = {"once": 1, "twice": 2, "thrice": 3}

COUNT_DIGITS_RE = re.compile(r"\b(\d+)\s*times?\b", re.I)
COUNT_X_RE = re.compile(r"\b(\d+)\s*x\b", re.I)
COUNT_MULT_RE = re.compile(r"\b(once|twice|thrice)\b", re.I)
COUNT_WORD_RE = re.compile(r"\b(%s)\s+times?\b" % "|".join(WORD_NUMBERS), re.I)
COUNT_ANY_RE = re.compile(
    r"\b(?:\d+\s*times?\b|\d+\s*x\b|once\b|twice\b|thrice\b|(?:%s)\s+times?\b)" % "|".join(WORD_NUMBERS),
    re.I,
)

SHOW_VERBS = r"(?:show|say|print|output|echo|display|announce|present|reveal)"
PRINT_CLAUSE_RE = re.compile(r",?\s*\b(?:and|then)\s+(?:print|output|echo|show|say|display)\b", re.I)
EMBEDDED_ASSIGN_RE = re.compile(rf"\s+and\s+{IDENT}\s*=", re.I)

# Longest phrases first; each maps a comparison phrase onto a DSL operator.
CONDITION_PHRASES = [
    (r"\b(?:is\s+)?greater\s+than\s+or\s+equal\s+to\b", ">="),
    (r"\b(?:is\s+)?less\s+than\s+or\s+equal\s+to\b", "<="),
    (r"\b(?:is\s+)?at\s+least\b", ">="),
    (r"\b(?:is\s+)?at\s+most\b", "<="),
    (r"\b(?:is\s+)?(?:greater|more|higher|bigger)\s+than\b", ">"),
    (r"\b(?:is\s+)?(?:less|lower|smaller|fewer)\s+than\b", "<"),
    (r"\b(?:is\s+)?not\s+equal\s+to\b", "!="),
    (r"\bdoes\s+not\s+equal\b", "!="),
    (r"\bis\s+not\b", "!="),
    (r"\b(?:is\s+)?equal\s+to\b", "=="),
    (r"\bequals\b", "=="),
    (r"\bis\b", "=="),
]
CONDITION_RHS_RE = re.compile(
    rf"(==|!=|>=|<=|>|<)\s*({IDENT}(?:\s+(?!(?:and|or)\b){IDENT})*)"
)

ARITH_WORDS = [
    (r"\bmultiplied\s+by\b", "*"),
    (r"\bdivided\s+by\b", "/"),
    (r"\bplus\b", "+"),
    (r"\bminus\b", "-"),
    (r"\btimes\b", "*"),
    (r"\bmod(?:ulo)?\b", "%"),
]


def quote(text: str) -> str:
    """Render text as a DSL string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    return f'"{escaped}"'


def strip_wrapping_quotes(text: str) -> str:
    """Peel matching outer quotes (single or double), repeatedly."""
    t = text.strip()
    while len(t) >= 2 and t[0] == t[-1] and t[0] in "\"'":
        t = t[1:-1].strip()
    return t


def sanitize_text(text: str) -> str:
    """Message payload: no wrapping quotes, no trailing punctuation."""
    return strip_wrapping_quotes(text).strip("\"' .,!?…").strip()


def first_quoted(text: str) -> Optional[str]:
    m = QUOTED_RE.search(text)
    if not m:
        return None
    return m.group(1) if m.group(1) is not None else m.group(2)


def all_quoted(text: str) -> List[str]:
    return [single or double for single, double in QUOTED_RE.findall(text)]


def is_identifier(text: str) -> bool:
    return bool(IDENT_RE.match(text)) and text.lower() not in LITERAL_WORDS


def is_number(text: str) -> bool:
    return bool(NUMBER_RE.match(text.strip()))


def has_operator(expr: str) -> bool:
    """True when an arithmetic operator appears outside quoted text and `//` markers."""
    bare = QUOTED_RE.sub("", expr).replace("//", " ")
    return bool(re.search(r"[-+*/%]", bare))


def mentions_print(text: str) -> bool:
    return bool(re.search(r"\b(?:print|show|output|echo|say|display)\b", text, re.I))


def loop_count(text: str) -> Optional[int]:
    """Requested repeat count, or None when the text names none."""
    t = strip_wrapping_quotes(text)
    for pattern in (COUNT_DIGITS_RE, COUNT_X_RE):
        m = pattern.search(t)
        if m:
            return int(m.group(1))
    m = COUNT_MULT_RE.search(t)
    if m:
        return MULTIPLIERS[m.group(1).lower()]
    m = COUNT_WORD_RE.search(t)
    if m:
        return WORD_NUMBERS[m.group(1).lower()]
    return None


def loop_message(text: str) -> str:
    """The payload a loop macro repeats."""
    t = strip_wrapping_quotes(text)

    quoted = first_quoted(t)
    if quoted:
        msg = sanitize_text(quoted)
        if msg:
            return msg

    # "Run 3 times: say hello"
    m = re.match(r"^run\s+\S+\s+times?\s*:\s*(.+)$", t.strip(), re.I)
    if m:
        msg = re.sub(rf"^{SHOW_VERBS}\s+", "", m.group(1).strip(), flags=re.I)
        msg = sanitize_text(msg)
        if msg:
            return msg

    m = COUNT_ANY_RE.search(t)
    head = t[:m.start()].strip() if m else t.strip()
    for prefix in (r"^(?:please|kindly)\s+", r"^loop\s*:?\s*", r"^(?:repeat|run)\s+",
                   rf"^{SHOW_VERBS}\s+", r"^the\s+(?:phrase|word|text|message)\s+"):
        head = re.sub(prefix, "", head, flags=re.I)
    head = sanitize_text(head.rstrip(":,").strip())
    return head or sanitize_text(t)


def normalize_condition(raw: str) -> str:
    """Turn an English comparison phrase into a DSL condition."""
    c = raw.strip().rstrip(",:").strip()
    for pattern, op in CONDITION_PHRASES:
        c = re.sub(pattern, f" {op} ", c, flags=re.I)
    c = re.sub(r"(?<![=!<>])=(?!=)", "==", c)

    def _rhs(m):
        op, rhs = m.group(1), m.group(2)
        if rhs.lower() in LITERAL_WORDS:
            return f"{op} {rhs.lower()}"
        return f"{op} {quote(rhs)}"

    c = CONDITION_RHS_RE.sub(_rhs, c)
    c = re.sub(r"\s+", " ", c)
    return c.strip()


def clean_expr(expr: str) -> str:
    """Cut trailing clauses (`and b = ...`, `, then ...`) off an assignment RHS."""
    e = expr.strip().rstrip(",").strip()
    m = EMBEDDED_ASSIGN_RE.search(e)
    if m:
        e = e[:m.start()].strip()
    idx = e.lower().find(", then")
    if idx >= 0:
        e = e[:idx].strip()
    return e.rstrip(",.").strip()


def requote(expr: str) -> str:
    """Rewrite every quoted segment ('x' or "x") as a DSL string literal."""
    return re.sub(r"'([^']*)'|\"([^\"]*)\"",
                  lambda m: quote(m.group(1) if m.group(1) is not None else m.group(2)),
                  expr)


def parse_rhs(raw: str) -> str:
    """Single-value right-hand side: number, bool/null, variable or string literal."""
    had_quote = "'" in raw or '"' in raw
    val = strip_wrapping_quotes(sanitize_text(raw))
    if not val:
        return '""'
    if is_number(val):
        return val
    if val.lower() in LITERAL_WORDS:
        return val.lower()
    if IDENT_RE.match(val) and not had_quote:
        return val
    return quote(val)


def normalize_expr(expr: str) -> str:
    """Right-hand side of a synthesized `set`, as DSL expression text."""
    e = clean_expr(expr)

    m = re.match(r"^(?P<base>.+?)\s*\*\*\s*(?P<exp>\d+)$", e)
    if m:
        base = m.group("base").strip()
        exp = min(int(m.group("exp")), 8)
        if exp == 0:
            return "1"
        if exp == 1:
            return requote(base)
        return " * ".join([f"({requote(base)})"] * exp)

    if not QUOTED_RE.search(e):
        for pattern, op in ARITH_WORDS:
            e = re.sub(pattern, op, e, flags=re.I)

    if has_operator(e):
        return requote(e)
    return parse_rhs(e)


def split_terms(expr: str) -> List[str]:
    """Split on `+` outside quotes."""
    terms, buf, quote_char = [], [], None
    for ch in expr:
        if quote_char:
            buf.append(ch)
            if ch == quote_char:
                quote_char = None
        elif ch in "\"'":
            quote_char = ch
            buf.append(ch)
        elif ch == "+":
            terms.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    terms.append("".join(buf).strip())
    return [t for t in terms if t]


def term_expr(term: str) -> str:
    """One concatenation operand rendered as DSL."""
    t = term.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in "\"'":
        return quote(t[1:-1])
    if is_number(t) or is_identifier(t):
        return t
    return quote(sanitize_text(t))


def concat_expr(terms: List[str]) -> str:
    """`'Total:' + total` -> `"Total: " + total`; a label followed by a value gets a space."""
    rendered = [term_expr(t) for t in terms]
    if len(terms) == 2:
        label, value = terms[0].strip(), terms[1].strip()
        if len(label) >= 2 and label[0] == label[-1] and label[0] in "\"'" and is_identifier(value):
            inner = label[1:-1]
            if inner and not inner.endswith(" "):
                rendered[0] = quote(inner + " ")
    return " + ".join(rendered)


def parse_var_expr(text: str) -> Optional[Tuple[str, str, bool]]:
    """
    Find an assignment in the instruction.

    Returns (variable, raw expression, print requested) or None. Handles
    `set X to/= Y`, `create variable X = Y`, `store Y in X` and
    `set/create/store X Y`.
    """
    p = text.strip()
    wants_print = bool(PRINT_CLAUSE_RE.search(p)) or mentions_print(p)

    def _finish(var: str, expr: str):
        m = PRINT_CLAUSE_RE.search(expr)
        if m:
            expr = expr[:m.start()]
        expr = clean_expr(expr)
        low = expr.lower()
        idx = low.find(" into ")
        if idx > 0:
            expr = expr[:idx].strip()
        return var, expr or "0", wants_print

    m = re.search(rf"\bset\s+({IDENT})\s*(?:=|\bto\b)\s*(.+)", p, re.I)
    if m:
        return _finish(m.group(1), m.group(2))

    m = re.search(rf"\bcreate\s+(?:a\s+)?variable\s+({IDENT})\s*(?:=|\bto\b|\bwith\s+value\b)?\s*(.+)", p, re.I)
    if m:
        return _finish(m.group(1), m.group(2))

    m = re.search(rf"\bstore\s+(.+?)\s+(?:in|into|as)\s+({IDENT})\b", p, re.I)
    if m:
        return _finish(m.group(2), m.group(1))

    m = re.search(rf"\b(?:set|create|store)\s+({IDENT})\s*(?:=|\bto\b)?\s*(.+)", p, re.I)
    if m:
        return _finish(m.group(1), m.group(2))

    return None


def second_assignment(text: str, first_var: str) -> Optional[Tuple[str, str]]:
    """`set a = 1 and b = 2, then ...` -> ("b", "2")."""
    m = re.search(
        rf"\band\s+({IDENT})\s*=\s*(.+?)(?:,?\s*(?:then|and)\s+(?:print|output|echo|say|show)\b|$)",
        text, re.I,
    )
    if not m:
        return None
    var, expr = m.group(1), m.group(2).strip().rstrip(",").strip()
    if var == first_var or not expr:
        return None
    return var, expr


def find_print_tail(text: str, var: str) -> Optional[str]:
    """
    Expression to print after an assignment, or None to print the variable itself.
    """
    matches = list(re.finditer(r"\b(?:print|echo|output|show|display|say)\s+", text, re.I))
    if not matches:
        return None
    raw = text[matches[-1].end():].strip().rstrip(".!").strip()
    low = raw.lower()
    if not raw or low in ("it", "that", "this", "the result", "the value", "result", var.lower()):
        return None

    if "+" in raw:
        return concat_expr(split_terms(raw))

    if re.search(rf"\b{re.escape(var)}\b", raw):
        pre, post = re.split(rf"\b{re.escape(var)}\b", raw, maxsplit=1)
        segs = []
        pre = strip_wrapping_quotes(pre.strip().rstrip(","))
        if pre:
            segs.append(quote(pre + " "))
        segs.append(var)
        post = strip_wrapping_quotes(post.strip())
        if post:
            segs.append(quote(" " + post))
        return " + ".join(segs)

    return normalize_expr(raw)


def find_target(text: str, default: str = "result") -> Tuple[str, bool]:
    """Variable named by `store in X` / `into X` / `as X`; (name, found)."""
    m = re.search(rf"\b(?:store\s+(?:it\s+)?in|save\s+(?:it\s+)?(?:in|as)|into|as)\s+({IDENT})\b", text, re.I)
    if m and m.group(1).lower() not in ("a", "the"):
        return m.group(1), True
    return default, False
