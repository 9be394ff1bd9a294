"""Error types raised by the DSL front end and evaluator."""

from typing import Iterable, Optional


class DslError(Exception):
    """Base class for lexer and parser failures."""

    kind = "DslError"

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self):
        if self.line is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind} on line {self.line}: {self.message}"


class LexError(DslError):
    kind = "LexError"


class ParseError(DslError):
    kind = "ParseError"

    def __init__(self, expected: Iterable[str], found: str, line: Optional[int] = None):
        self.expected = sorted(set(expected))
        self.found = found
        if self.expected:
            message = f"expected {' or '.join(self.expected)}, found {found}"
        else:
            message = f"unexpected {found}"
        super().__init__(message, line)


class EvalError(Exception):
    """Recoverable evaluation failure (division by zero, arithmetic on text...)."""

    kind = "EvalError"
