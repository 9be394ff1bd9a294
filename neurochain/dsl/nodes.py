"""Statement tree and expression nodes produced by the parser."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .values import Value


# Expressions

@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Var:
    name: str


@dataclass(frozen=True)
class BinOp:
    op: str  # + - * / %
    left: object
    right: object


@dataclass(frozen=True)
class Neg:
    operand: object


@dataclass(frozen=True)
class Compare:
    """`a < b <= c`: operands[i] op[i] operands[i+1] for every i."""
    operands: Tuple[object, ...]
    ops: Tuple[str, ...]


@dataclass(frozen=True)
class BoolOp:
    op: str  # and / or
    operands: Tuple[object, ...]


# Statements

@dataclass(frozen=True)
class Print:
    expr: object
    line: int = 0


@dataclass(frozen=True)
class Assign:
    name: str
    expr: object
    line: int = 0


@dataclass(frozen=True)
class AssignFromAI:
    name: str
    prompt: str
    line: int = 0


@dataclass(frozen=True)
class SelectModel:
    path: object
    line: int = 0


@dataclass(frozen=True)
class Branch:
    condition: object
    body: Tuple[object, ...]


@dataclass(frozen=True)
class If:
    branches: Tuple[Branch, ...]
    orelse: Optional[Tuple[object, ...]] = None
    line: int = 0


@dataclass(frozen=True)
class MacroInvoke:
    instruction: str
    line: int = 0


@dataclass(frozen=True)
class Program:
    statements: Tuple[object, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.statements)

    def __len__(self):
        return len(self.statements)

    def __getitem__(self, index):
        return self.statements[index]
