"""
Binding of table specifications to live destination schemas.
"""

import logging

from sqlrouter.core.errors import BindError
from sqlrouter.core.mapping import FieldMapper
from sqlrouter.core.models import TableSchema, TableSpec
from sqlrouter.core.validators import RowValidator

logger = logging.getLogger(__name__)


class TableBinding:
    """
    A TableSpec paired with the introspected schema of its table.

    Active bindings take part in routing. Inactive bindings keep the
    BindError that disabled them so it can be reported.

    Attributes:
        spec: Table specification
        mapper: FieldMapper built for the table
        schema: Introspected schema (None when inactive)
        validator: RowValidator over the schema (None when inactive)
        error: Bind failure (None when active)
    """

    def __init__(
        self,
        spec: TableSpec,
        mapper: FieldMapper,
        schema: TableSchema | None = None,
        error: BindError | None = None,
    ):
        self.spec = spec
        self.mapper = mapper
        self.schema = schema
        self.error = error
        self.validator = RowValidator(schema) if schema is not None else None

    @property
    def active(self) -> bool:
        return self.schema is not None and self.error is None

    @property
    def table_name(self) -> str:
        return self.spec.table

    @property
    def columns(self) -> list[str]:
        """Columns written by the bulk insert, in row order."""
        return self.mapper.columns

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"TableBinding(table={self.table_name}, pattern={self.spec.pattern}, {state})"


def bind_table(spec: TableSpec, mapper: FieldMapper, catalog) -> TableBinding:
    """
    Bind a table specification against the destination schema.

    Configured columns are not compared with the schema here; a column
    the table lacks makes each affected record fail at import time.

    Args:
        spec: Table specification
        mapper: FieldMapper for the table
        catalog: Object exposing introspect_table(name) -> TableSchema

    Returns:
        Active TableBinding

    Raises:
        BindError: If the table is missing or its schema cannot be read
    """
    try:
        schema = catalog.introspect_table(spec.table)
    except Exception as e:
        raise BindError(spec.table, e) from e

    logger.debug(
        f"Bound table '{spec.table}' with columns {schema.column_names}",
        extra={"table": spec.table, "columns": schema.column_names},
    )
    return TableBinding(spec, mapper, schema=schema)
