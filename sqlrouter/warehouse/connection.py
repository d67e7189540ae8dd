"""
PostgreSQL connection pool management using psycopg3

The pool is shared by the schema catalog (startup introspection) and the
bulk inserter (one transaction per batch).
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

ENV_PREFIX = "SQLROUTER_DB_"


class DatabaseConnectionPool:
    """
    PostgreSQL connection pool manager using psycopg3

    Provides pooled connections with retrying open and automatic
    connection lifecycle management.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize database connection pool

        Args:
            host: Database host (defaults to env var SQLROUTER_DB_HOST)
            port: Database port (defaults to env var SQLROUTER_DB_PORT)
            database: Database name (defaults to env var SQLROUTER_DB_NAME)
            user: Database user (defaults to env var SQLROUTER_DB_USER)
            password: Database password (defaults to env var SQLROUTER_DB_PASSWORD)
            min_size: Minimum pool size
            max_size: Maximum pool size
            timeout: Connection timeout in seconds
        """
        self.host = host or os.getenv(f"{ENV_PREFIX}HOST", "localhost")
        self.port = port or int(os.getenv(f"{ENV_PREFIX}PORT", "5432"))
        self.database = database or os.getenv(f"{ENV_PREFIX}NAME")
        self.user = user or os.getenv(f"{ENV_PREFIX}USER")
        self.password = password or os.getenv(f"{ENV_PREFIX}PASSWORD")

        if not self.database:
            raise ValueError(
                "Database name must be provided. "
                f"Set {ENV_PREFIX}NAME environment variable or pass to constructor."
            )

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout

        parts = [
            f"host={self.host}",
            f"port={self.port}",
            f"dbname={self.database}",
            f"connect_timeout={max(1, int(self.timeout))}",
        ]
        if self.user:
            parts.append(f"user={self.user}")
        if self.password:
            parts.append(f"password={self.password}")
        self.conninfo = " ".join(parts)

        self._pool: ConnectionPool | None = None

    @classmethod
    def from_config(cls, config) -> "DatabaseConnectionPool":
        """
        Build a pool from an OutputConfig.

        Args:
            config: Loaded output configuration
        """
        return cls(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.username,
            password=config.password,
            timeout=config.connect_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the connection pool with retry logic.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between retries in seconds

        Raises:
            OperationalError: If connection fails after all retries
        """
        if self._pool is not None:
            return

        for attempt in range(1, max_retries + 1):
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
                kwargs={"row_factory": dict_row},  # Return rows as dictionaries
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
                self._pool = pool
                return
            except OperationalError as e:
                pool.close()
                if attempt < max_retries:
                    time.sleep(retry_delay)
                else:
                    raise OperationalError(
                        f"Failed to connect to database after {max_retries} attempts: {e}"
                    ) from e

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool

        Yields:
            psycopg.Connection: Database connection

        Raises:
            RuntimeError: If pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def get_cursor(self):
        """
        Get a cursor from a pooled connection

        Yields:
            psycopg.Cursor: Database cursor
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def execute_query(self, query, params: tuple | None = None) -> list[dict]:
        """
        Execute a SELECT query and return results

        Args:
            query: SQL SELECT query (string or psycopg.sql.Composable)
            params: Query parameters (optional)

        Returns:
            List of dictionaries (one per row)
        """
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
