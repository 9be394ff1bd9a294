"""
Runtime values and the variable store.

A value is one of float (Number), str (String), bool (Bool) or None (Null).
Numbers are always stored as float; booleans are checked before numbers
because bool is an int subclass.
"""

import math
import re
from typing import Dict, Optional, Union

Value = Union[float, str, bool, None]

NUMBER_RE = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$')


def display(value: Value) -> str:
    """Render a value the way `neuro` prints it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def to_number(value: Value) -> Optional[float]:
    """Numeric reading of a value, or None when its trimmed display form is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return value
    text = str(value).strip()
    if not NUMBER_RE.match(text):
        return None
    return float(text)


def fold(value: Value) -> str:
    """Case- and whitespace-insensitive comparison key."""
    return display(value).strip().lower()


def truthy(value: Value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return value != 0.0 and not math.isnan(value)
    text = value.strip().lower()
    return bool(text) and text != "false"


class Environment:
    """
    Variable bindings for one script run.

    Looking up a name with no binding yields the name itself as a String.
    """

    def __init__(self):
        self._vars: Dict[str, Value] = {}

    def set(self, name: str, value: Value):
        self._vars[name] = value

    def get(self, name: str) -> Value:
        if name in self._vars:
            return self._vars[name]
        return name

    def snapshot(self) -> Dict[str, Value]:
        return dict(self._vars)

    def __contains__(self, name: str) -> bool:
        return name in self._vars

    def __len__(self) -> int:
        return len(self._vars)
