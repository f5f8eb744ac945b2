"""Table schema inference for the ``%table`` magic.

A structured value is read as a list of rows. Each row yields named columns:

- array rows use positional names ``"0"``, ``"1"``, ...
- object rows use their keys, sorted
- any other value is a single column named ``"0"``

Every cell is classified into a ``CanonicalType``. A column keeps the type of
the first cell seen for it; a later cell of a different type fails the whole
inference. There is no widening between numeric types.
"""

import enum
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from .responses import APPLICATION_TABLE_JSON, Error, ExecutionResponse, Success
from .values import (
    ArrayValue,
    BoolValue,
    DecimalValue,
    DoubleValue,
    IntValue,
    NullValue,
    ObjectValue,
    StringValue,
    StructuredValue,
)


class CanonicalType(str, enum.Enum):
    NULL = "NULL_TYPE"
    BOOLEAN = "BOOLEAN_TYPE"
    STRING = "STRING_TYPE"
    BIGINT = "BIGINT_TYPE"
    DOUBLE = "DOUBLE_TYPE"
    DECIMAL = "DECIMAL_TYPE"
    ARRAY = "ARRAY_TYPE"
    MAP = "MAP_TYPE"


class TypesDoNotMatch(Exception):
    """Raised when values that must share a canonical type do not."""


class ColumnHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: CanonicalType

    def to_json(self):
        return {"name": self.name, "type": self.type.value}


class Table(BaseModel):
    """Inferred table: headers sorted by name, rows aligned to the headers."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    headers: List[ColumnHeader]
    data: List[List[StructuredValue]]

    def to_json(self):
        return {
            "headers": [header.to_json() for header in self.headers],
            "data": [[cell.to_json() for cell in row] for row in self.data],
        }


_SCALAR_TYPES = (
    (NullValue, CanonicalType.NULL),
    (BoolValue, CanonicalType.BOOLEAN),
    (StringValue, CanonicalType.STRING),
    (IntValue, CanonicalType.BIGINT),
    (DoubleValue, CanonicalType.DOUBLE),
    (DecimalValue, CanonicalType.DECIMAL),
)


def classify(value: StructuredValue) -> CanonicalType:
    """Return the canonical type of ``value``.

    Arrays and objects are only classified when all their elements (field
    values for objects) share one canonical type, checked recursively.

    Raises:
        TypesDoNotMatch: if a container mixes element types.
        TypeError: if ``value`` is not a StructuredValue.
    """
    for cls, canonical in _SCALAR_TYPES:
        if isinstance(value, cls):
            return canonical
    if isinstance(value, ArrayValue):
        _require_same_type(value.items)
        return CanonicalType.ARRAY
    if isinstance(value, ObjectValue):
        _require_same_type(v for _, v in value.fields)
        return CanonicalType.MAP
    raise TypeError(f"not a structured value: {type(value).__name__}")


def _require_same_type(values: Iterable[StructuredValue]) -> None:
    expected = None
    for value in values:
        canonical = classify(value)
        if expected is None:
            expected = canonical
        elif canonical != expected:
            raise TypesDoNotMatch()


def row_columns(row: StructuredValue) -> List[Tuple[str, StructuredValue]]:
    if isinstance(row, ArrayValue):
        return [(str(index), v) for index, v in enumerate(row.items)]
    if isinstance(row, ObjectValue):
        return sorted(row.fields, key=lambda field: field[0])
    return [("0", row)]


def infer_table(value: StructuredValue) -> Table:
    """Build a ``Table`` from a structured value.

    Rows are aligned to the sorted headers. A column a row does not carry is
    filled with ``NullValue`` even when the column has another type; column
    types come only from the cells that are present.

    Raises:
        TypesDoNotMatch: if two cells of one column classify differently.
    """
    rows = list(value.items) if isinstance(value, ArrayValue) else [value]

    headers: Dict[str, ColumnHeader] = {}
    columns_per_row = []
    for row in rows:
        columns = dict(row_columns(row))
        for name, cell in columns.items():
            canonical = classify(cell)
            header = headers.get(name)
            if header is None:
                headers[name] = ColumnHeader(name=name, type=canonical)
            elif header.type != canonical:
                raise TypesDoNotMatch()
        columns_per_row.append(columns)

    ordered = [headers[name] for name in sorted(headers)]
    # cells missing from a row are reported as null
    data = [
        [columns.get(header.name, NullValue()) for header in ordered]
        for columns in columns_per_row
    ]
    return Table(headers=ordered, data=data)


def table_response(value: StructuredValue) -> ExecutionResponse:
    try:
        table = infer_table(value)
    except TypesDoNotMatch:
        return Error(kind="TypeError", name="table rows have different types")
    return Success(payload={APPLICATION_TABLE_JSON: table})
