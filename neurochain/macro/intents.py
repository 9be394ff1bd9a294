"""
Intent resolution for macro instructions.

Two stages: trust the macro classifier when its score clears the threshold,
otherwise walk an ordered list of keyword predicates. A set of refinement
rules then corrects labels that the instruction's surface form contradicts.
Every function here is pure over the instruction text.
"""

import re
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .extract import all_quoted, has_operator, loop_count, parse_var_expr

DEFAULT_THRESHOLD = 0.35


class Intent(str, Enum):
    LOOP = "Loop"
    BRANCH = "Branch"
    ARITH = "Arith"
    CONCAT = "Concat"
    ROLE_FLAG = "RoleFlag"
    AI_BRIDGE = "AIBridge"
    DOC_PRINT = "DocPrint"
    SET_VAR = "SetVar"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: str) -> Optional["Intent"]:
        """Classifier label -> Intent, case-insensitive; None for labels outside the set."""
        key = label.strip().replace("_", "").replace("-", "").lower()
        for intent in cls:
            if intent.value.lower() == key:
                return intent
        return None


COMPARISON_RE = re.compile(
    r"==|!=|<=|>=|<|>|\bequals\b|\b(?:greater|less|more|fewer)\s+than\b|\bis\s+not\b|\bat\s+(?:least|most)\b",
    re.I,
)
ARITH_VERB_RE = re.compile(r"\b(?:calculate|compute|subtract|add|multiply|divide|sum)\b", re.I)
CONCAT_WORD_RE = re.compile(r"\b(?:concatenate|concat|combine|join)\b", re.I)
QUOTED_PLUS_RE = re.compile(r"['\"][^'\"]*['\"]\s*\+|\+\s*['\"]")
COMMENT_INSTRUCTION_RE = re.compile(
    r"\bwrite\s+a\s+comment\b|\badd\s+(?:a\s+)?comment\b|\binsert\s+(?:a\s+)?comment\b"
    r"|\bcomment\s+(?:that\s+)?says\b|\busing\s+(?://|#)",
    re.I,
)
ASSIGN_WORD_RE = re.compile(r"\b(?:set|create|store)\s", re.I)
EMBEDDED_SET_RE = re.compile(r"\b(?:then|and)\s+set\s+[A-Za-z_]\w*\s*(?:=|to)\s+", re.I)
PRINT_START_RE = re.compile(r"^(?:print|output|echo|say|display|format)\s", re.I)
PRINT_CONCAT_RE = re.compile(
    r"""^print\s+(?:['"].+?['"]\s*\+\s*[A-Za-z_]\w*|[A-Za-z_]\w*\s*\+\s*['"][^'"]*['"]\s*\+\s*[A-Za-z_]\w*)""",
    re.I,
)
WHEN_FORM_RE = re.compile(
    r"^(?:show|print|output|echo)\s+([A-Za-z_]\w*)\s+when\s+([A-Za-z_]\w*)\s+is\s+(\w+)\s*$", re.I
)


def _low(text: str) -> str:
    return text.strip().lower()


# Fallback predicates

def is_loop(text: str) -> bool:
    return loop_count(text) is not None or bool(re.search(r"\b\d+\s*x\b", text, re.I))


def is_branch(text: str) -> bool:
    if re.search(r"\b(?:if|elif|else|otherwise)\b", text, re.I):
        return True
    return bool(re.search(r"\b(?:and|or)\b", text, re.I)) and bool(COMPARISON_RE.search(text))


def is_arith(text: str) -> bool:
    if ARITH_VERB_RE.search(text) and (has_operator(text) or re.search(r"\d", text)):
        return True
    if ASSIGN_WORD_RE.search(text):
        parsed = parse_var_expr(text)
        return parsed is not None and has_operator(parsed[1])
    return False


def is_concat(text: str) -> bool:
    return bool(CONCAT_WORD_RE.search(text) or QUOTED_PLUS_RE.search(text))


def is_role_flag(text: str) -> bool:
    return bool(re.search(r"\bset\s+(?:the\s+)?role\b|\brole\s*=|\bpromote\b.+\bto\b|\bdemote\b.+\bto\b", text, re.I))


def is_set_var(text: str) -> bool:
    return bool(ASSIGN_WORD_RE.search(text))


def is_ai_bridge(text: str) -> bool:
    return (bool(re.search(r"\b(?:forward|bridge|relay)\b", text, re.I))
            and bool(re.search(r"\b(?:model|assistant|output)\b", text, re.I)))


def is_doc_print(text: str) -> bool:
    return bool(re.search(r"\bcomment\b|#|//", text, re.I))


FALLBACK_ORDER: List[Tuple[Intent, Callable[[str], bool]]] = [
    (Intent.LOOP, is_loop),
    (Intent.BRANCH, is_branch),
    (Intent.ARITH, is_arith),
    (Intent.CONCAT, is_concat),
    (Intent.ROLE_FLAG, is_role_flag),
    (Intent.SET_VAR, is_set_var),
    (Intent.AI_BRIDGE, is_ai_bridge),
    (Intent.DOC_PRINT, is_doc_print),
]


def infer_intent(text: str) -> Intent:
    """Keyword fallback. Total: every input resolves to exactly one Intent."""
    for intent, predicate in FALLBACK_ORDER:
        if predicate(text):
            return intent
    return Intent.UNKNOWN


def rhs_has_math(text: str) -> bool:
    parsed = parse_var_expr(text)
    if parsed is not None:
        expr = parsed[1].lower()
        return has_operator(expr) or " plus " in f" {expr} " or " minus " in f" {expr} "
    return has_operator(text) or bool(re.search(r"\b(?:plus|minus)\b", text, re.I))


def refine_intent(intent: Intent, text: str) -> Intent:
    """Correct a resolved intent against the surface form of the instruction."""
    low = _low(text)
    loopish = is_loop(text)

    if intent is Intent.LOOP and low.startswith("if "):
        intent = Intent.BRANCH
    elif intent is Intent.LOOP and not loopish:
        intent = infer_intent(text)

    # set/create/store: arithmetic when the right-hand side carries an operator
    if intent is not Intent.ROLE_FLAG and not is_role_flag(text):
        if re.match(r"^(?:set|create|store)\s", low) or EMBEDDED_SET_RE.search(text):
            intent = Intent.ARITH if rhs_has_math(text) else Intent.SET_VAR

    if CONCAT_WORD_RE.search(text) and len(all_quoted(text)) >= 2:
        intent = Intent.CONCAT

    has_assignment = bool(ASSIGN_WORD_RE.search(text))
    if COMMENT_INSTRUCTION_RE.search(text) and not has_assignment:
        intent = Intent.DOC_PRINT

    if PRINT_START_RE.match(low) and not has_assignment and not loopish:
        intent = Intent.DOC_PRINT

    # Surface forms that always win
    if intent not in (Intent.SET_VAR, Intent.ARITH) and "+" in text and PRINT_CONCAT_RE.search(_print_segment(text)):
        intent = Intent.CONCAT
    if low.startswith("if ") or WHEN_FORM_RE.match(text.strip()) or (" else " in low and "if " in low):
        intent = Intent.BRANCH
    return intent


def _print_segment(text: str) -> str:
    """The instruction from its last `print` onwards (or the whole text)."""
    idx = text.lower().rfind("print ")
    return text[idx:] if idx >= 0 else text


def resolve_intent(label: Optional[str], score: float, text: str,
                   threshold: float = DEFAULT_THRESHOLD) -> Tuple[Intent, bool]:
    """
    Pick the intent for an instruction.

    Returns (intent, used_fallback). The classifier label is used only when
    it names a known intent and `score >= threshold`.
    """
    intent = Intent.from_label(label) if label is not None else None
    used_fallback = intent is None or score < threshold
    if used_fallback:
        intent = infer_intent(text)
    return refine_intent(intent, text), used_fallback
