"""JSON text in the exact form JavaScript's `JSON.stringify` produces.

Receivers verify the signature against the `transloadit` field byte for byte,
so a parsed status body has to be written back the way a JavaScript sender
would write it. Two places differ from `json.dumps`:

* numbers: integral floats drop the fraction (`10.0` -> `10`), exponents
  carry an explicit sign and no padding (`1e-7`, `1e+21`), and the switch to
  exponent notation happens at 1e21 / 1e-7 instead of Python's limits;
* object keys: integer-like keys come first in ascending numeric order,
  all other keys follow in insertion order.
"""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import Any, Dict, List

_ARRAY_INDEX = re.compile(r"0|[1-9][0-9]*")
_MAX_ARRAY_INDEX = 2**32 - 2


def is_array_index(key: str) -> bool:
    return _ARRAY_INDEX.fullmatch(key) is not None and int(key) <= _MAX_ARRAY_INDEX


def ordered_keys(obj: Dict[str, Any]) -> List[str]:
    indices = sorted((key for key in obj if is_array_index(key)), key=int)
    return indices + [key for key in obj if not is_array_index(key)]


def format_number(value: float) -> str:
    """Number::toString for a double; non-finite values become `null`."""
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr is the shortest round-tripping form, the same digits JS picks
    parts = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in parts.digits)
    k = len(digits)
    n = parts.exponent + k

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        exponent = n - 1
        mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
        text = f"{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"
    return sign + text


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def stringify(value: Any) -> str:
    """Serialize a value decoded by `json.loads` without any whitespace."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, int):
        # JavaScript only has doubles, large integers lose precision the same way
        try:
            return format_number(float(value))
        except OverflowError:
            return "null"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stringify(item) for item in value) + "]"
    if isinstance(value, dict):
        members = (f"{_quote(key)}:{stringify(value[key])}" for key in ordered_keys(value))
        return "{" + ",".join(members) + "}"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
