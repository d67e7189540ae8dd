"""
Schema catalog for destination tables.

Reads column definitions from information_schema. Tables are only
introspected here, never created or altered.
"""

from sqlrouter.core.errors import TableNotFoundError
from sqlrouter.core.models import ColumnSchema, TableSchema

from .connection import DatabaseConnectionPool

COLUMNS_QUERY = """
    SELECT column_name, data_type, is_nullable,
           character_maximum_length, column_default
    FROM information_schema.columns
    WHERE table_schema = COALESCE(%s::text, current_schema())
      AND table_name = %s
    ORDER BY ordinal_position
"""


def split_table_name(table: str) -> tuple[str | None, str]:
    """
    Split "schema.table" into its parts.

    Returns:
        (schema_name or None, table_name)
    """
    if "." in table:
        schema_name, table_name = table.split(".", 1)
        return schema_name, table_name
    return None, table


class SchemaCatalog:
    """
    Introspects destination tables through a connection pool.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema catalog.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def introspect_table(self, table: str) -> TableSchema:
        """
        Read the column set of a table.

        Args:
            table: Table name, optionally schema-qualified

        Returns:
            TableSchema with columns in ordinal order

        Raises:
            TableNotFoundError: If the table has no visible columns
            psycopg.Error: If the catalog query fails
        """
        schema_name, table_name = split_table_name(table)
        rows = self.pool.execute_query(COLUMNS_QUERY, (schema_name, table_name))
        if not rows:
            raise TableNotFoundError(table)

        return TableSchema(
            table_name=table_name,
            schema_name=schema_name,
            columns=[
                ColumnSchema(
                    name=row["column_name"],
                    data_type=row["data_type"],
                    nullable=row["is_nullable"] == "YES",
                    max_length=row["character_maximum_length"],
                    has_default=row["column_default"] is not None,
                )
                for row in rows
            ],
        )
