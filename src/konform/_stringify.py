"""Rendering of values and message templates for error texts."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

MAX_STRING_LENGTH = 32

_CONTROL_REPLACERS = {i: chr(0x2400 + i) for i in range(0x20)}
_CONTROL_REPLACERS[0x7F] = "␡"

_PLACEHOLDER = re.compile(r"\{(?P<key>[A-Za-z_]+)(?:\.(?P<info>[a-z]+))?\}")


def type_name(value: Any) -> str:
    """
    Return a short type description of a value.

    NaN and infinities are named explicitly, other values use the
    name of their class.
    """
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return "float"
    if value is None:
        return "None"
    return type(value).__name__


def stringify(value: Any) -> str:
    """
    Render a value for use in an error message.

    Example:
        stringify(3)          # "int 3"
        stringify("abc")      # 'str(3) "abc"'
        stringify([1, 2])     # "list(2)<int>"
    """
    if value is None:
        return "None"
    if isinstance(value, bool):
        return f"bool {value}"
    if isinstance(value, int):
        return f"int {value}"
    if isinstance(value, float):
        name = type_name(value)
        return name if name != "float" else f"float {value!r}"
    if isinstance(value, str):
        text = value.translate(_CONTROL_REPLACERS)
        if len(text) > MAX_STRING_LENGTH:
            text = text[: MAX_STRING_LENGTH - 1] + "…"
        return f'str({len(value)}) "{text}"'
    if isinstance(value, (bytes, bytearray)):
        return f"{type(value).__name__}({len(value)})"
    if isinstance(value, Mapping):
        return f"{type(value).__name__}({len(value)})" + _element_types(
            value.values(), keys=value.keys()
        )
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{type(value).__name__}({len(value)})" + _element_types(value)
    return f"<{type(value).__name__}>"


def _element_types(values: Any, keys: Any = None) -> str:
    value_types = {type_name(v) for v in values}
    if not value_types:
        return ""
    value_part = value_types.pop() if len(value_types) == 1 else "mixed"
    if keys is None:
        return f"<{value_part}>"
    key_types = {type_name(k) for k in keys}
    key_part = key_types.pop() if len(key_types) == 1 else "mixed"
    return f"<{key_part}, {value_part}>"


def parse_message(message: str, replacers: Mapping[str, Any]) -> str:
    """
    Replace `{key}` and `{key.info}` placeholders in a message.

    info can be one of:
        raw:   str() of the value (default)
        type:  type_name() of the value
        debug: stringify() of the value
        repr:  repr() of the value

    Placeholders with an unknown key or info are left as they are.

    Example:
        parse_message("Got {subject.debug}", {"subject": 5})  # "Got int 5"
    """

    def replace(match: re.Match[str]) -> str:
        key = match.group("key")
        if key not in replacers:
            return match.group(0)
        value = replacers[key]
        info = match.group("info") or "raw"
        if info == "raw":
            return str(value)
        if info == "type":
            return type_name(value)
        if info == "debug":
            return stringify(value)
        if info == "repr":
            return repr(value)
        return match.group(0)

    return _PLACEHOLDER.sub(replace, message)
