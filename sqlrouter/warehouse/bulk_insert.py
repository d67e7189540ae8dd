"""
Bulk insert of converted rows.

Each call writes one batch with a single executemany inside one
transaction: either all rows are committed or none are.
"""

from typing import Any

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from sqlrouter.core.errors import BatchImportError

from .catalog import split_table_name
from .connection import DatabaseConnectionPool


def build_insert(table: str, columns: list[str]) -> sql.Composed:
    """
    Compose an INSERT statement with one placeholder per column.

    Args:
        table: Table name, optionally schema-qualified
        columns: Destination columns in row order; an empty list inserts
            a row of column defaults
    """
    schema_name, table_name = split_table_name(table)
    target = sql.Identifier(schema_name, table_name) if schema_name else sql.Identifier(table_name)
    if not columns:
        return sql.SQL("INSERT INTO {} DEFAULT VALUES").format(target)
    return sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        target,
        sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )


def adapt_value(value: Any) -> Any:
    """Wrap structured values so the driver stores them as JSON."""
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


class BulkInserter:
    """
    Writes row batches into destination tables.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize bulk inserter.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def insert_rows(self, table: str, columns: list[str], rows: list[dict[str, Any]]) -> int:
        """
        Insert a batch of rows in one transaction.

        Args:
            table: Destination table
            columns: Column order for the statement
            rows: Validated rows keyed by column name

        Returns:
            Number of rows inserted

        Raises:
            BatchImportError: If the insert fails; nothing is committed
        """
        if not rows:
            return 0

        query = build_insert(table, columns)
        params = [tuple(adapt_value(row.get(c)) for c in columns) for row in rows]

        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.executemany(query, params)
                conn.commit()
        except psycopg.Error as e:
            raise BatchImportError(table, e) from e

        return len(rows)
