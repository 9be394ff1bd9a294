"""
Hand-written lexer for NeuroChain scripts.

Produces a flat list of Token objects including NEWLINE / INDENT / DEDENT
markers. The rest of a line after `from AI:` is kept verbatim as a single
RAW token so prompts and macro instructions may be bare words.
"""

import re
from dataclasses import dataclass
from typing import List

from .errors import LexError

KEYWORDS = {"ai", "set", "from", "neuro", "macro", "if", "elif", "else", "and", "or"}
BOOLS = {"true", "false"}
NULLS = {"null", "none"}

ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}

# Longest operators first so `==` never lexes as two `=`.
OPERATORS = ["==", "!=", "<=", ">=", "<", ">", "=", "+", "-", "*", "/", "%"]
COMPARISONS = {"==", "!=", "<=", ">=", "<", ">"}

NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
IDENT_RE = re.compile(r"[^\W\d]\w*")


@dataclass(frozen=True)
class Token:
    kind: str     # keyword, identifier, string, number, bool, null, operator,
                  # punctuation, colon, newline, indent, dedent, raw
    lexeme: str
    line: int
    column: int = 1

    @property
    def value(self) -> str:
        """Keyword-ish lexemes are case-insensitive; everything else verbatim."""
        if self.kind in ("keyword", "bool", "null"):
            return self.lexeme.lower()
        return self.lexeme


def strip_comment(line: str) -> str:
    """Cut a `#` or `//` comment that starts outside a double-quoted string."""
    in_string = False
    i = 0
    while i < len(line):
        ch = line[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "#" or line.startswith("//", i):
            return line[:i]
        i += 1
    return line


def _read_string(text: str, start: int, lineno: int):
    """Decode a double-quoted literal starting at text[start]; returns (value, end)."""
    out = []
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == '"':
            return "".join(out), i + 1
        if ch == "\\":
            if i + 1 >= len(text):
                break
            esc = text[i + 1]
            if esc not in ESCAPES:
                raise LexError(f"invalid escape '\\{esc}' in string", lineno)
            out.append(ESCAPES[esc])
            i += 2
            continue
        out.append(ch)
        i += 1
    raise LexError("unterminated string", lineno)


def _lex_line(code: str, indent: int, lineno: int) -> List[Token]:
    tokens: List[Token] = []
    i = indent
    while i < len(code):
        ch = code[i]
        col = i + 1
        if ch in " \t":
            i += 1
            continue
        if ch == '"':
            value, i = _read_string(code, i, lineno)
            tokens.append(Token("string", value, lineno, col))
            continue
        if ch == ":":
            tokens.append(Token("colon", ":", lineno, col))
            i += 1
            # `from AI:` hands the rest of the line over untouched
            if (len(tokens) >= 3
                    and tokens[-2].kind == "keyword" and tokens[-2].value == "ai"
                    and tokens[-3].kind == "keyword" and tokens[-3].value == "from"):
                tokens.append(Token("raw", code[i:].strip(), lineno, i + 1))
                break
            continue
        if ch in "()":
            tokens.append(Token("punctuation", ch, lineno, col))
            i += 1
            continue
        m = NUMBER_RE.match(code, i)
        if m:
            tokens.append(Token("number", m.group(), lineno, col))
            i = m.end()
            continue
        m = IDENT_RE.match(code, i)
        if m:
            word = m.group()
            low = word.lower()
            if low in KEYWORDS:
                kind = "keyword"
            elif low in BOOLS:
                kind = "bool"
            elif low in NULLS:
                kind = "null"
            else:
                kind = "identifier"
            tokens.append(Token(kind, word, lineno, col))
            i = m.end()
            continue
        for op in OPERATORS:
            if code.startswith(op, i):
                tokens.append(Token("operator", op, lineno, col))
                i += len(op)
                break
        else:
            raise LexError(f"unexpected character '{ch}'", lineno)
    return tokens


def tokenize(source: str) -> List[Token]:
    """Split script text into tokens, raising LexError on malformed input."""
    tokens: List[Token] = []
    levels = [0]
    lineno = 0
    for lineno, raw_line in enumerate(source.split("\n"), start=1):
        code = strip_comment(raw_line).rstrip()
        if not code.strip():
            continue
        stripped = code.lstrip(" \t")
        leading = code[:len(code) - len(stripped)]
        if "\t" in leading:
            raise LexError("tab character in indentation, use spaces", lineno)
        indent = len(leading)

        if indent > levels[-1]:
            levels.append(indent)
            tokens.append(Token("indent", "", lineno, 1))
        elif indent < levels[-1]:
            while indent < levels[-1]:
                levels.pop()
                tokens.append(Token("dedent", "", lineno, 1))
            if indent != levels[-1]:
                raise LexError("unindent does not match any outer indentation level", lineno)

        tokens.extend(_lex_line(code, indent, lineno))
        tokens.append(Token("newline", "", lineno, len(code) + 1))

    while len(levels) > 1:
        levels.pop()
        tokens.append(Token("dedent", "", lineno, 1))
    return tokens


_KEYWORD_TERMINALS = {"from": "_FROM", "and": "_AND", "or": "_OR"}
_OPERATOR_TERMINALS = {"+": "PLUS", "-": "MINUS", "*": "MUL_OP", "/": "MUL_OP", "%": "MUL_OP", "=": "_ASSIGN"}
_SIMPLE_TERMINALS = {
    "identifier": "NAME", "string": "STRING", "number": "NUMBER", "null": "NULL",
    "raw": "RAW", "colon": "_COLON", "newline": "_NL", "indent": "_INDENT", "dedent": "_DEDENT",
}


def terminal_name(token: Token) -> str:
    """Grammar terminal a token feeds into the LALR parser."""
    if token.kind == "keyword":
        return _KEYWORD_TERMINALS.get(token.value, token.value.upper())
    if token.kind == "bool":
        return token.value.upper()
    if token.kind == "operator":
        if token.lexeme in COMPARISONS:
            return "COMP_OP"
        return _OPERATOR_TERMINALS[token.lexeme]
    if token.kind == "punctuation":
        return "_LPAR" if token.lexeme == "(" else "_RPAR"
    return _SIMPLE_TERMINALS[token.kind]
