"""
RowValidator - validates and coerces a row against a table schema.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlrouter.core.errors import RecordFormatError
from sqlrouter.core.models import ColumnSchema, TableSchema

INTEGER_TYPES = {"smallint", "integer", "bigint", "int", "int2", "int4", "int8", "serial", "bigserial"}
DECIMAL_TYPES = {"numeric", "decimal", "money"}
FLOAT_TYPES = {"real", "double precision", "float4", "float8"}
BOOLEAN_TYPES = {"boolean", "bool"}
TEXT_TYPES = {"text", "character varying", "varchar", "character", "char", "citext", "uuid"}
JSON_TYPES = {"json", "jsonb"}

TRUE_STRINGS = ("true", "t", "1", "yes", "y", "on")
FALSE_STRINGS = ("false", "f", "0", "no", "n", "off")


class RowValidator:
    """
    Validates rows for one destination table.

    Each column value is checked against the introspected column:
    unknown columns and NULLs in NOT NULL columns are rejected, and
    values are coerced to the Python type matching the column's
    data type (e.g. "42" -> 42 for an integer column).

    Types without a coercion rule pass through unchanged and are left
    to the database.
    """

    def __init__(self, schema: TableSchema):
        self.schema = schema
        self._columns = {c.name: c for c in schema.columns}

    def validate(self, row: dict[str, Any]) -> dict[str, Any]:
        """
        Validate a row and return its coerced copy.

        Args:
            row: Column name to value mapping from a FieldMapper

        Returns:
            New mapping with coerced values, same column order

        Raises:
            RecordFormatError: If any column is unknown or a value
                cannot be stored in its column
        """
        validated = {}
        for name, value in row.items():
            column = self._columns.get(name)
            if column is None:
                raise RecordFormatError(
                    name, f"unknown attribute for table '{self.schema.table_name}'"
                )
            validated[name] = self.coerce(column, value)
        return validated

    def coerce(self, column: ColumnSchema, value: Any) -> Any:
        """
        Coerce a single value for a column.

        Raises:
            RecordFormatError: If the value does not fit the column
        """
        if value is None:
            if not column.nullable:
                raise RecordFormatError(column.name, "null value in NOT NULL column")
            return None

        data_type = column.data_type.lower()
        try:
            if data_type in INTEGER_TYPES:
                return self._to_int(value)
            if data_type in DECIMAL_TYPES:
                return self._to_decimal(value)
            if data_type in FLOAT_TYPES:
                return self._to_float(value)
            if data_type in BOOLEAN_TYPES:
                return self._to_bool(value)
            if data_type in TEXT_TYPES:
                return self._to_text(value, column.max_length)
            if data_type.startswith("timestamp"):
                return self._to_datetime(value)
            if data_type == "date":
                return self._to_date(value)
            if data_type in JSON_TYPES:
                return self._to_json(value)
        except (ValueError, TypeError, ArithmeticError, OSError) as e:
            raise RecordFormatError(
                column.name,
                f"Cannot coerce {type(value).__name__} to {column.data_type}: {e}",
            ) from e

        return value

    @staticmethod
    def _to_int(value: Any) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"{value} is not integral")
            return int(value)
        if isinstance(value, (str, Decimal)):
            number = Decimal(str(value).strip())
            if number != number.to_integral_value():
                raise ValueError(f"{value} is not integral")
            return int(number)
        raise TypeError(f"unsupported value {value!r}")

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
            raise TypeError(f"unsupported value {value!r}")
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"invalid number {value!r}") from e

    @staticmethod
    def _to_float(value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
            raise TypeError(f"unsupported value {value!r}")
        return float(value)

    @staticmethod
    def _to_bool(value: Any) -> bool:
        # Avoid bool("false") -> True
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
        raise ValueError(f"Cannot parse {value!r} as boolean")

    @staticmethod
    def _to_text(value: Any, max_length: int | None) -> str:
        if isinstance(value, (dict, list, tuple, set)):
            raise TypeError("structured value in text column")
        text = value if isinstance(value, str) else str(value)
        if max_length is not None and len(text) > max_length:
            raise ValueError(f"value too long ({len(text)} > {max_length})")
        return text

    @staticmethod
    def _to_datetime(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, bool):
            raise TypeError("boolean is not a timestamp")
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        if isinstance(value, str):
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        raise TypeError(f"unsupported value {value!r}")

    @staticmethod
    def _to_date(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return date.fromisoformat(value.strip())
        raise TypeError(f"unsupported value {value!r}")

    @staticmethod
    def _to_json(value: Any) -> Any:
        # must be serialisable; the inserter wraps it for the driver
        json.dumps(value)
        return value

    def __repr__(self) -> str:
        return f"RowValidator(table={self.schema.table_name}, columns={list(self._columns)})"
