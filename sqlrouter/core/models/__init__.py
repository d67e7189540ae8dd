"""
Core data models for the event router.

All models use Pydantic for runtime validation.
"""

from .event_batch import Event, EventBatch
from .import_result import ImportResult
from .table_schema import ColumnSchema, TableSchema
from .table_spec import DEFAULT_PATTERN, TableSpec

__all__ = [
    "DEFAULT_PATTERN",
    "Event",
    "EventBatch",
    "ImportResult",
    "ColumnSchema",
    "TableSchema",
    "TableSpec",
]
