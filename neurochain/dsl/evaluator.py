"""
Expression evaluation over the value model.

Arithmetic picks its rule per occurrence: when both operands read as numbers
the operator is numeric, otherwise `+` concatenates display forms and the
remaining operators raise EvalError. Comparisons are numeric for two numbers
and case/whitespace-insensitive text comparisons otherwise.
"""

import math
import operator

from .errors import EvalError
from .nodes import BinOp, BoolOp, Compare, Literal, Neg, Var
from .values import Environment, Value, display, fold, to_number, truthy

NUMERIC_OPS = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
}

COMPARE_OPS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


def arithmetic(op: str, left: Value, right: Value) -> Value:
    a, b = to_number(left), to_number(right)
    if a is None or b is None:
        if op == "+":
            return display(left) + display(right)
        raise EvalError(f"cannot apply '{op}' to {display(left)!r} and {display(right)!r}")
    if op in ("/", "%") and b == 0:
        raise EvalError("division by zero" if op == "/" else "modulo by zero")
    if op == "/":
        return a / b
    if op == "%":
        # fmod rejects an infinite dividend
        if math.isinf(a):
            return float("nan")
        return math.fmod(a, b)
    return float(NUMERIC_OPS[op](a, b))


def compare(op: str, left: Value, right: Value) -> bool:
    a, b = to_number(left), to_number(right)
    if a is not None and b is not None:
        return COMPARE_OPS[op](a, b)
    return COMPARE_OPS[op](fold(left), fold(right))


def evaluate(expr, env: Environment) -> Value:
    """Evaluate an expression node against an environment."""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Var):
        return env.get(expr.name)
    if isinstance(expr, BinOp):
        return arithmetic(expr.op, evaluate(expr.left, env), evaluate(expr.right, env))
    if isinstance(expr, Neg):
        value = evaluate(expr.operand, env)
        number = to_number(value)
        if number is None:
            raise EvalError(f"cannot negate {display(value)!r}")
        return -number
    if isinstance(expr, Compare):
        left = evaluate(expr.operands[0], env)
        for op, operand in zip(expr.ops, expr.operands[1:]):
            right = evaluate(operand, env)
            if not compare(op, left, right):
                return False
            left = right
        return True
    if isinstance(expr, BoolOp):
        # short-circuit left to right
        for operand in expr.operands:
            result = truthy(evaluate(operand, env))
            if expr.op == "and" and not result:
                return False
            if expr.op == "or" and result:
                return True
        return expr.op == "and"
    raise EvalError(f"unsupported expression {type(expr).__name__}")
