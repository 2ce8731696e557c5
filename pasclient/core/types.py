"""Scalar types tolerant of the PAS API's inconsistent JSON encoding.

Depending on the server version, identifiers arrive as JSON strings or
numbers and booleans as JSON booleans or strings. These types normalize
both at the decoding boundary:

- FlexibleID: canonical form is ``str``; always re-encodes as a JSON string
- FlexibleBool: canonical form is ``bool``; always re-encodes as true/false
"""
from __future__ import annotations
import json
import math
from decimal import Decimal
from typing import Any, Union

from .exceptions import PASDecodeError

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

_TRUE_STRINGS = {"true", "1"}
_FALSE_STRINGS = {"false", "0", ""}


def _loads(raw: Union[str, bytes], type_name: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise PASDecodeError(f"{type_name}: cannot unmarshal {_raw_text(raw)}") from exc


def _raw_text(raw: Any) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        return raw
    return json.dumps(raw)


def _format_float(value: float) -> str:
    """Shortest round-tripping decimal, positional notation (1e20 -> '100000000000000000000')."""
    return format(Decimal(repr(value)).normalize(), "f")


class FlexibleID(str):
    """Entity identifier that may be serialized as a JSON string or number."""

    @classmethod
    def from_json(cls, value: Any) -> "FlexibleID":
        """Build from an already-decoded JSON value.

        Raises:
            PASDecodeError: For booleans, objects and arrays
        """
        if value is None:
            return cls("")
        if isinstance(value, bool):
            raise PASDecodeError(f"FlexibleID: cannot unmarshal {json.dumps(value)}")
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, int):
            if _INT64_MIN <= value <= _INT64_MAX:
                return cls(str(value))
            try:
                value = float(value)
            except OverflowError as exc:
                raise PASDecodeError(f"FlexibleID: cannot unmarshal {value}") from exc
        if isinstance(value, float) and math.isfinite(value):
            return cls(_format_float(value))
        raise PASDecodeError(f"FlexibleID: cannot unmarshal {_raw_text(value)}")

    @classmethod
    def loads(cls, raw: Union[str, bytes]) -> "FlexibleID":
        """Decode raw JSON text."""
        return cls.from_json(_loads(raw, "FlexibleID"))

    def to_json(self) -> str:
        return json.dumps(str(self))

    def __repr__(self) -> str:
        return f"FlexibleID({str(self)!r})"


class FlexibleBool:
    """Boolean that may be serialized as a JSON boolean or a string."""

    __slots__ = ("_value",)

    def __init__(self, value: bool = False):
        self._value = bool(value)

    @classmethod
    def from_json(cls, value: Any) -> "FlexibleBool":
        """Build from an already-decoded JSON value.

        Accepts true/false, and the strings "true"/"false"/"1"/"0"/"" in any case.

        Raises:
            PASDecodeError: For numbers, objects, arrays and unrecognized strings
        """
        if value is None:
            return cls(False)
        if isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in _TRUE_STRINGS:
                return cls(True)
            if lowered in _FALSE_STRINGS:
                return cls(False)
            raise PASDecodeError(f"FlexibleBool: cannot unmarshal string {json.dumps(value)}")
        raise PASDecodeError(f"FlexibleBool: cannot unmarshal {_raw_text(value)}")

    @classmethod
    def loads(cls, raw: Union[str, bytes]) -> "FlexibleBool":
        """Decode raw JSON text."""
        return cls.from_json(_loads(raw, "FlexibleBool"))

    @property
    def value(self) -> bool:
        return self._value

    def to_json(self) -> str:
        return "true" if self._value else "false"

    def __bool__(self) -> bool:
        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FlexibleBool):
            return self._value == other._value
        if isinstance(other, bool):
            return self._value is other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"FlexibleBool({self._value})"


class PASJSONEncoder(json.JSONEncoder):
    """JSON encoder that writes FlexibleBool values as JSON booleans."""

    def default(self, o: Any) -> Any:
        if isinstance(o, FlexibleBool):
            return o.value
        return super().default(o)
