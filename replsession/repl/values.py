"""Structured values: the canonical shape of a decomposed host value.

The set of shapes is closed (null, bool, string, int, double, decimal, array,
object). Magic commands never look at host values directly; they first run
them through ``decompose`` and then work on these shapes only.
"""

import dataclasses
import datetime
import decimal
import inspect
from collections.abc import Mapping
from typing import Any, Tuple

from pydantic import BaseModel


class DecomposeError(ValueError):
    """Raised when a host value has no structured representation."""


class StructuredValue:
    """Base class of the closed set of structured value shapes."""

    __slots__ = ()

    def to_json(self) -> Any:
        raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class NullValue(StructuredValue):
    def to_json(self):
        return None


@dataclasses.dataclass(frozen=True)
class BoolValue(StructuredValue):
    value: bool

    def to_json(self):
        return self.value


@dataclasses.dataclass(frozen=True)
class StringValue(StructuredValue):
    value: str

    def to_json(self):
        return self.value


@dataclasses.dataclass(frozen=True)
class IntValue(StructuredValue):
    value: int

    def to_json(self):
        return self.value


@dataclasses.dataclass(frozen=True)
class DoubleValue(StructuredValue):
    value: float

    def to_json(self):
        return self.value


@dataclasses.dataclass(frozen=True)
class DecimalValue(StructuredValue):
    value: decimal.Decimal

    def to_json(self):
        # kept as Decimal so no digits are lost; encode with a Decimal-aware serializer
        return self.value


@dataclasses.dataclass(frozen=True)
class ArrayValue(StructuredValue):
    items: Tuple[StructuredValue, ...] = ()

    def to_json(self):
        return [item.to_json() for item in self.items]


@dataclasses.dataclass(frozen=True)
class ObjectValue(StructuredValue):
    """Ordered key/value pairs with unique keys."""

    fields: Tuple[Tuple[str, StructuredValue], ...] = ()

    def __post_init__(self):
        keys = [key for key, _ in self.fields]
        if len(keys) != len(set(keys)):
            raise ValueError("object keys must be unique")

    def to_json(self):
        return {key: value.to_json() for key, value in self.fields}


def array(*items: StructuredValue) -> ArrayValue:
    return ArrayValue(tuple(items))


def obj(**fields: StructuredValue) -> ObjectValue:
    return ObjectValue(tuple(fields.items()))


def decompose(value: Any) -> StructuredValue:
    """Convert an arbitrary Python value into a ``StructuredValue``.

    Containers are converted recursively. Mapping keys are converted with
    ``str``; dataclasses, pydantic models and plain objects become objects of
    their public fields in declaration order.

    Raises:
        DecomposeError: for values with no structured form (functions,
            modules, classes, bytes, ...).
    """
    if value is None:
        return NullValue()
    if isinstance(value, StructuredValue):
        return value
    # bool must be tested before int
    if isinstance(value, bool):
        return BoolValue(value)
    if isinstance(value, int):
        return IntValue(int(value))
    if isinstance(value, float):
        return DoubleValue(value)
    if isinstance(value, decimal.Decimal):
        return DecimalValue(value)
    if isinstance(value, str):
        return StringValue(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return StringValue(value.isoformat())
    if isinstance(value, (bytes, bytearray, memoryview)):
        raise DecomposeError("binary values cannot be decomposed")
    if isinstance(value, BaseModel):
        return decompose(value.model_dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return ObjectValue(tuple(
            (f.name, decompose(getattr(value, f.name))) for f in dataclasses.fields(value)
        ))
    if isinstance(value, Mapping):
        return ObjectValue(tuple((str(k), decompose(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple, set, frozenset, range)):
        return ArrayValue(tuple(decompose(item) for item in value))
    if inspect.isroutine(value) or inspect.ismodule(value) or inspect.isclass(value):
        raise DecomposeError(f"cannot decompose {type(value).__name__} values")
    if hasattr(value, "__dict__"):
        return ObjectValue(tuple(
            (k, decompose(v)) for k, v in vars(value).items() if not k.startswith("_")
        ))
    raise DecomposeError(f"cannot decompose {type(value).__name__} values")
