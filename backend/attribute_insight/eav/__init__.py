"""EAV storage helpers: backend-type dispatch and catalog lookups."""

from attribute_insight.eav.backends import (
    BackendType,
    ValueBackend,
    value_backend_for,
    value_table_exists,
)

__all__ = ["BackendType", "ValueBackend", "value_backend_for", "value_table_exists"]
