from pathlib import Path

from lark import Lark, Transformer, Token as LarkToken
from lark.exceptions import UnexpectedInput
from lark.lexer import Lexer

from .errors import ParseError
from .lexer import tokenize, terminal_name
from .nodes import (
    Assign, AssignFromAI, BinOp, BoolOp, Branch, Compare, If, Literal,
    MacroInvoke, Neg, Print, Program, SelectModel, Var,
)

GRAMMAR = (Path(__file__).parent / "grammar.lark").read_text(encoding="utf-8")

# Human readable names used in ParseError messages.
TERMINAL_NAMES = {
    "$END": "end of input",
    "_NL": "newline",
    "_INDENT": "indented block",
    "_DEDENT": "end of block",
    "_COLON": "':'",
    "_ASSIGN": "'='",
    "_LPAR": "'('",
    "_RPAR": "')'",
    "_FROM": "'from'",
    "_AND": "'and'",
    "_OR": "'or'",
    "NAME": "identifier",
    "STRING": "string",
    "NUMBER": "number",
    "RAW": "text",
    "PLUS": "'+'",
    "MINUS": "'-'",
    "MUL_OP": "operator",
    "COMP_OP": "comparison operator",
}


class DslLexer(Lexer):
    """Feeds tokens from the hand-written lexer into lark."""

    def __init__(self, lexer_conf):
        pass

    def lex(self, data):
        text = getattr(data, "text", data)
        for tok in tokenize(text):
            yield LarkToken(terminal_name(tok), tok.value, line=tok.line, column=tok.column)


PARSER = Lark(GRAMMAR, parser="lalr", lexer=DslLexer)


def describe_terminal(name: str) -> str:
    if name in TERMINAL_NAMES:
        return TERMINAL_NAMES[name]
    return f"'{name.lower()}'"


def describe_token(token) -> str:
    kind = token.type
    if kind == "NAME":
        return f"identifier '{token}'"
    if kind == "STRING":
        return f'string "{token}"'
    if kind in ("NUMBER", "MUL_OP", "COMP_OP"):
        return f"'{token}'"
    return describe_terminal(kind)


def _unquote(text: str) -> str:
    """`"hello"` -> hello; anything else is returned verbatim."""
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        body = text[1:-1]
        return body.replace('\\"', '"').replace("\\n", "\n").replace("\\t", "\t").replace("\\\\", "\\")
    return text


class AST(Transformer):
    # expressions
    def number(self, children): return Literal(float(children[0]))
    def string(self, children): return Literal(str(children[0]))
    def var(self, children): return Var(str(children[0]))
    def true(self, children): return Literal(True)
    def false(self, children): return Literal(False)
    def null(self, children): return Literal(None)
    def neg(self, children): return Neg(children[1])

    def binop(self, children):
        left, op, right = children
        return BinOp(str(op), left, right)

    def comparison(self, children):
        operands = tuple(children[0::2])
        ops = tuple(str(op) for op in children[1::2])
        return Compare(operands, ops)

    def and_test(self, children): return BoolOp("and", tuple(children))
    def or_test(self, children): return BoolOp("or", tuple(children))

    # statements
    def select_model(self, children):
        ai, path = children
        return SelectModel(path, ai.line)

    def assign(self, children):
        kw, name, expr = children
        return Assign(str(name), expr, kw.line)

    def assign_ai(self, children):
        kw, name, _ai, raw = children
        return AssignFromAI(str(name), _unquote(str(raw)), kw.line)

    def print_stmt(self, children):
        kw, expr = children
        return Print(expr, kw.line)

    def macro_stmt(self, children):
        kw, _ai, raw = children
        return MacroInvoke(str(raw), kw.line)

    def block(self, children): return tuple(children)

    def elif_clause(self, children):
        _kw, cond, body = children
        return Branch(cond, body)

    def else_clause(self, children):
        return ("else", children[1])

    def if_stmt(self, children):
        kw, cond, body, *rest = children
        branches = [Branch(cond, body)]
        orelse = None
        for part in rest:
            if isinstance(part, Branch):
                branches.append(part)
            else:
                orelse = part[1]
        return If(tuple(branches), orelse, kw.line)

    def start(self, children): return Program(tuple(children))


def parse(source: str) -> Program:
    """Lex and parse script text into a Program; raises LexError or ParseError."""
    try:
        tree = PARSER.parse(source)
    except UnexpectedInput as e:
        token = getattr(e, "token", None)
        expected = [describe_terminal(t) for t in (getattr(e, "expected", None) or ())]
        found = describe_token(token) if token is not None else "end of input"
        line = getattr(token, "line", None) or getattr(e, "line", None)
        if line is not None and line < 1:
            line = None
        raise ParseError(expected, found, line) from None
    return AST().transform(tree)
