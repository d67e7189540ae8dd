"""
FieldMapper - reshapes a raw record into a destination row.
"""

import logging
from collections.abc import Mapping
from typing import Any

from sqlrouter.core.models import TableSpec

logger = logging.getLogger(__name__)


class FieldMapper:
    """
    Maps record fields onto table columns.

    List mode (no key_names): each column is read from the record field
    of the same name.

    Keyed mode: key_names and column_names are zipped positionally. When
    the lists differ in length a warning is logged and the tail of the
    longer list is ignored.

    Missing fields become None; they are never an error here.
    """

    def __init__(self, spec: TableSpec):
        """
        Build the mapper for a table.

        Args:
            spec: Table specification
        """
        self.table = spec.table

        if spec.key_names is None:
            self.pairs: list[tuple[str, str]] = [(c, c) for c in spec.column_names]
        else:
            if len(spec.key_names) != len(spec.column_names):
                logger.warning(
                    "key_names and column_names are different size",
                    extra={
                        "table": spec.table,
                        "key_names": spec.key_names,
                        "column_names": spec.column_names,
                    },
                )
            self.pairs = list(zip(spec.key_names, spec.column_names))

    @property
    def columns(self) -> list[str]:
        """Destination columns in row order."""
        return [column for _, column in self.pairs]

    def format(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Convert one record into a row.

        Args:
            record: Raw event record

        Returns:
            Ordered mapping of column name to value

        Raises:
            TypeError: If the record is not a mapping
        """
        if not isinstance(record, Mapping):
            raise TypeError(f"Record must be a mapping, got {type(record).__name__}")

        return {column: record.get(key) for key, column in self.pairs}

    def __repr__(self) -> str:
        return f"FieldMapper(table={self.table}, pairs={self.pairs})"
