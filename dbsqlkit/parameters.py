"""Query parameters and the inference of their SQL types."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import IntEnum
from typing import Any, Iterable


class SqlType(IntEnum):
    """SQL type of a query parameter."""

    UNKNOWN = 0
    STRING = 1
    DATE = 2
    TIMESTAMP = 3
    FLOAT = 4
    DECIMAL = 5
    DOUBLE = 6
    INTEGER = 7
    BIGINT = 8
    SMALLINT = 9
    TINYINT = 10
    BOOLEAN = 11
    INTERVAL_MONTH = 12
    INTERVAL_DAY = 13
    VOID = 14

    def __str__(self) -> str:
        return _TYPE_NAMES.get(self, "unknown")


_TYPE_NAMES = {
    SqlType.STRING: "STRING",
    SqlType.DATE: "DATE",
    SqlType.TIMESTAMP: "TIMESTAMP",
    SqlType.FLOAT: "FLOAT",
    SqlType.DECIMAL: "DECIMAL",
    SqlType.DOUBLE: "DOUBLE",
    SqlType.INTEGER: "INTEGER",
    SqlType.BIGINT: "BIGINT",
    SqlType.SMALLINT: "SMALLINT",
    SqlType.TINYINT: "TINYINT",
    SqlType.BOOLEAN: "BOOLEAN",
    SqlType.INTERVAL_MONTH: "INTERVAL MONTH",
    SqlType.INTERVAL_DAY: "INTERVAL DAY",
    SqlType.VOID: "VOID",
}


@dataclass
class Parameter:
    """A query parameter with an optional explicit SQL type."""

    name: str = ""
    type: SqlType = SqlType.UNKNOWN
    value: Any = None


@dataclass(frozen=True)
class NamedValue:
    """An argument as handed to a statement: a value, possibly named."""

    name: str = ""
    value: Any = None
    ordinal: int = 0


@dataclass(frozen=True)
class SparkParameter:
    """A parameter in the form sent to the server."""

    name: str
    type: str
    value: str | None


def values_to_parameters(named_values: Iterable[NamedValue]) -> list[Parameter]:
    """Turn statement arguments into parameters, unwrapping explicit Parameter values."""
    params = []
    for named in named_values:
        if isinstance(named.value, Parameter):
            given = named.value
            params.append(Parameter(name=given.name, type=given.type, value=given.value))
        else:
            params.append(Parameter(name=named.name, value=named.value))
    return params


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def infer_type(param: Parameter) -> Parameter:
    """Return a copy of the parameter with its type inferred and its value as a string.

    Naive datetimes are taken to be in UTC.
    """
    value = param.value
    if value is None:
        return replace(param, value=None, type=SqlType.VOID)
    if isinstance(value, bool):
        return replace(param, value="true" if value else "false", type=SqlType.BOOLEAN)
    if isinstance(value, str):
        return replace(param, type=SqlType.STRING)
    if isinstance(value, int):
        return replace(param, value=str(value), type=SqlType.INTEGER)
    if isinstance(value, float):
        return replace(param, value=_format_float(value), type=SqlType.FLOAT)
    if isinstance(value, datetime):
        return replace(param, value=_format_timestamp(value), type=SqlType.TIMESTAMP)
    if isinstance(value, (bytes, bytearray)):
        return replace(
            param, value=bytes(value).decode("utf-8", errors="replace"), type=SqlType.STRING
        )
    return replace(param, value=str(value), type=SqlType.STRING)


def infer_types(params: Iterable[Parameter]) -> list[Parameter]:
    """Infer the type of every parameter that has none; keep explicit types."""
    return [infer_type(p) if p.type == SqlType.UNKNOWN else p for p in params]


def infer_decimal_type(d: str) -> str:
    """Return the DECIMAL(precision,scale) type name fitting a decimal literal."""
    if d.startswith("0."):
        overall = after = len(d) - 2
    elif "." not in d:
        overall, after = len(d), 0
    else:
        whole, fraction = d.split(".")[:2]
        overall, after = len(whole) + len(fraction), len(fraction)
    return f"DECIMAL({overall},{after})"


def convert_to_spark_params(values: Iterable[NamedValue]) -> list[SparkParameter]:
    """Convert statement arguments into server parameters.

    Raises TypeError when an explicitly typed parameter does not carry a string value.
    """
    spark_params = []
    for param in infer_types(values_to_parameters(values)):
        if param.type == SqlType.VOID:
            value = None
        elif isinstance(param.value, str):
            value = param.value
        else:
            raise TypeError(
                f"parameter {param.name!r} of type {param.type} needs a string value, "
                f"got {type(param.value).__name__}"
            )
        if param.type == SqlType.DECIMAL:
            type_name = infer_decimal_type(value)
        else:
            type_name = str(param.type)
        spark_params.append(SparkParameter(name=param.name, type=type_name, value=value))
    return spark_params