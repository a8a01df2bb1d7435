"""Closed whitelist of scalar field types and the value coercion table."""

from __future__ import annotations

import datetime
import decimal
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ScalarKind(str, Enum):
    """Scalar kinds a record field may hold."""

    STRING = "string"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    DECIMAL = "decimal"


@dataclass(frozen=True)
class ScalarTypeInfo:
    """How one scalar kind is represented in generated source."""

    kind: ScalarKind
    python_type: type
    minimum: Optional[int] = None
    maximum: Optional[int] = None


_INT32_BOUNDS = (-(2**31), 2**31 - 1)
_INT64_BOUNDS = (-(2**63), 2**63 - 1)

_TYPE_INFO: dict[ScalarKind, ScalarTypeInfo] = {
    ScalarKind.STRING: ScalarTypeInfo(ScalarKind.STRING, str),
    ScalarKind.INT32: ScalarTypeInfo(ScalarKind.INT32, int, *_INT32_BOUNDS),
    ScalarKind.INT64: ScalarTypeInfo(ScalarKind.INT64, int, *_INT64_BOUNDS),
    ScalarKind.FLOAT32: ScalarTypeInfo(ScalarKind.FLOAT32, float),
    ScalarKind.FLOAT64: ScalarTypeInfo(ScalarKind.FLOAT64, float),
    ScalarKind.BOOLEAN: ScalarTypeInfo(ScalarKind.BOOLEAN, bool),
    ScalarKind.DATE: ScalarTypeInfo(ScalarKind.DATE, datetime.date),
    ScalarKind.DATETIME: ScalarTypeInfo(ScalarKind.DATETIME, datetime.datetime),
    ScalarKind.DECIMAL: ScalarTypeInfo(ScalarKind.DECIMAL, decimal.Decimal),
}

_TYPE_NAMES: dict[str, ScalarKind] = {
    "string": ScalarKind.STRING,
    "String": ScalarKind.STRING,
    "str": ScalarKind.STRING,
    "int": ScalarKind.INT32,
    "integer": ScalarKind.INT32,
    "Integer": ScalarKind.INT32,
    "long": ScalarKind.INT64,
    "Long": ScalarKind.INT64,
    "float": ScalarKind.FLOAT32,
    "Float": ScalarKind.FLOAT32,
    "double": ScalarKind.FLOAT64,
    "Double": ScalarKind.FLOAT64,
    "boolean": ScalarKind.BOOLEAN,
    "Boolean": ScalarKind.BOOLEAN,
    "bool": ScalarKind.BOOLEAN,
    "date": ScalarKind.DATE,
    "LocalDate": ScalarKind.DATE,
    "datetime": ScalarKind.DATETIME,
    "LocalDateTime": ScalarKind.DATETIME,
    "decimal": ScalarKind.DECIMAL,
    "BigDecimal": ScalarKind.DECIMAL,
}

ALLOWED_TYPE_NAMES: frozenset[str] = frozenset(_TYPE_NAMES)


def resolve_scalar_kind(type_name: str) -> Optional[ScalarKind]:
    """Return the scalar kind for a descriptor type name, or ``None`` if not whitelisted."""
    return _TYPE_NAMES.get(type_name)


def scalar_type_info(kind: ScalarKind) -> ScalarTypeInfo:
    """Return representation details for a scalar kind."""
    return _TYPE_INFO[kind]


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to text")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot convert non-finite number {value!r} to an integer")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to an integer")


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to a float")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
        raise ValueError(f"Cannot parse boolean from {value!r}")
    raise TypeError(f"Cannot convert {type(value).__name__} to a boolean")


def _to_date(value: Any) -> datetime.date:
    if not isinstance(value, str):
        raise TypeError(f"Dates must be ISO-8601 text, got {type(value).__name__}")
    return datetime.date.fromisoformat(value.strip())


def _to_datetime(value: Any) -> datetime.datetime:
    if not isinstance(value, str):
        raise TypeError(f"Date-times must be ISO-8601 text, got {type(value).__name__}")
    return datetime.datetime.fromisoformat(value.strip())


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, bool):
        raise TypeError("Cannot convert a boolean to a decimal")
    if isinstance(value, (int, float, str)):
        # str() keeps the shortest round-trip digits of floats instead of their binary expansion.
        parsed = decimal.Decimal(str(value).strip())
    else:
        raise TypeError(f"Cannot convert {type(value).__name__} to a decimal")
    if not parsed.is_finite():
        raise ValueError(f"Decimal value must be finite, got {value!r}")
    return parsed


_COERCERS: dict[type, Callable[[Any], Any]] = {
    str: _to_text,
    int: _to_int,
    float: _to_float,
    bool: _to_bool,
    datetime.date: _to_date,
    datetime.datetime: _to_datetime,
    decimal.Decimal: _to_decimal,
}


def coercer_for(target_type: type) -> Optional[Callable[[Any], Any]]:
    """Return the conversion function for a setter parameter type."""
    return _COERCERS.get(target_type)


def coerce_value(kind: ScalarKind, value: Any) -> Any:
    """Convert a document value into the Python value for a scalar kind.

    Args:
        kind (ScalarKind): Target scalar kind.
        value (Any): Untyped document value.

    Returns:
        Any: Converted value.

    Raises:
        TypeError: If the value shape cannot be converted.
        ValueError: If the value text cannot be parsed or falls out of range.
        ArithmeticError: If decimal parsing fails.
    """
    info = _TYPE_INFO[kind]
    converted = _COERCERS[info.python_type](value)
    if info.minimum is not None and converted < info.minimum:
        raise ValueError(f"{converted} is below the {kind.value} minimum {info.minimum}")
    if info.maximum is not None and converted > info.maximum:
        raise ValueError(f"{converted} is above the {kind.value} maximum {info.maximum}")
    return converted
