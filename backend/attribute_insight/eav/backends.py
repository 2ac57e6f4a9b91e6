"""Backend-type to value-table dispatch.

Each non-static backend type maps to exactly one value model. Callers never
build table names from strings; they ask `value_backend_for()` for a handler
and get `None` for static or unknown types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, and_, inspect
from sqlalchemy.orm import Session

from attribute_insight.models.entity_value import (
    EntityDatetimeValue,
    EntityDecimalValue,
    EntityIntValue,
    EntityTextValue,
    EntityValueMixin,
    EntityVarcharValue,
)


class BackendType(str, Enum):
    VARCHAR = "varchar"
    TEXT = "text"
    INT = "int"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    STATIC = "static"


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal value: {value!r}") from exc


def _to_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True, slots=True)
class ValueBackend:
    """Handler for one value table family."""

    backend_type: BackendType
    model: type[EntityValueMixin]
    textual: bool

    def filled_condition(self) -> ColumnElement[bool]:
        """SQL condition selecting non-null, non-empty value rows."""

        column = self.model.value
        if self.textual:
            return and_(column.is_not(None), column != "")
        return column.is_not(None)

    def coerce(self, value: Any) -> Any:
        """Convert a migrated value into the column's Python type."""

        if self.backend_type in (BackendType.VARCHAR, BackendType.TEXT):
            return _to_text(value)
        if self.backend_type is BackendType.INT:
            return _to_int(value)
        if self.backend_type is BackendType.DECIMAL:
            return _to_decimal(value)
        return _to_datetime(value)

    def serialize(self, value: Any) -> Any:
        """JSON-safe representation used in merge snapshots."""

        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        return value


VALUE_BACKENDS: dict[BackendType, ValueBackend] = {
    BackendType.VARCHAR: ValueBackend(BackendType.VARCHAR, EntityVarcharValue, textual=True),
    BackendType.TEXT: ValueBackend(BackendType.TEXT, EntityTextValue, textual=True),
    BackendType.INT: ValueBackend(BackendType.INT, EntityIntValue, textual=False),
    BackendType.DECIMAL: ValueBackend(BackendType.DECIMAL, EntityDecimalValue, textual=False),
    BackendType.DATETIME: ValueBackend(BackendType.DATETIME, EntityDatetimeValue, textual=False),
}


def value_backend_for(backend_type: str | None) -> ValueBackend | None:
    """Return the value handler for a backend type, or None for static/unknown."""

    try:
        resolved = BackendType(backend_type)
    except ValueError:
        return None
    return VALUE_BACKENDS.get(resolved)


def value_table_exists(db: Session, backend: ValueBackend) -> bool:
    """Check the live database for the handler's value table."""

    return inspect(db.connection()).has_table(backend.model.__tablename__)


def is_empty_value(value: Any) -> bool:
    return value is None or value == ""
