"""
PostgreSQL adapters: connection pool, schema catalog and bulk inserter.
"""

from .bulk_insert import BulkInserter
from .catalog import SchemaCatalog
from .connection import DatabaseConnectionPool

__all__ = ["BulkInserter", "DatabaseConnectionPool", "SchemaCatalog"]
