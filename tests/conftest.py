"""
Pytest configuration and fixtures for sql-event-router tests

Unit tests run against an in-memory schema catalog and bulk inserter;
integration tests use a PostgreSQL testcontainer.
"""
import logging
import os
from typing import Generator

import pytest

from sqlrouter.config import load_config_dict
from sqlrouter.core.errors import TableNotFoundError
from sqlrouter.core.models import ColumnSchema, TableSchema


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# IN-MEMORY COLLABORATORS
# =======================

class FakeCatalog:
    """Schema catalog serving predefined tables."""

    def __init__(self, tables: dict[str, TableSchema], failures: dict[str, Exception] | None = None):
        self.tables = tables
        self.failures = failures or {}
        self.calls: list[str] = []

    def introspect_table(self, table: str) -> TableSchema:
        self.calls.append(table)
        if table in self.failures:
            raise self.failures[table]
        if table not in self.tables:
            raise TableNotFoundError(table)
        return self.tables[table]


class FakeInserter:
    """Bulk inserter recording every call."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, list[str], list[dict]]] = []

    def insert_rows(self, table, columns, rows):
        self.calls.append((table, list(columns), list(rows)))
        if self.error is not None:
            raise self.error
        return len(rows)

    def rows_for(self, table: str) -> list[dict]:
        return [row for t, _, rows in self.calls if t == table for row in rows]


def make_schema(table: str, *columns: tuple) -> TableSchema:
    """Build a TableSchema from (name, data_type[, nullable[, max_length]]) tuples."""
    built = []
    for column in columns:
        name, data_type, *rest = column
        nullable = rest[0] if len(rest) > 0 else True
        max_length = rest[1] if len(rest) > 1 else None
        built.append(ColumnSchema(name=name, data_type=data_type, nullable=nullable, max_length=max_length))
    return TableSchema(table_name=table, columns=built)


SCHEMAS = {
    "events": make_schema(
        "events",
        ("message", "text"),
        ("logged_at", "timestamp with time zone"),
        ("tag", "text"),
    ),
    "access_log": make_schema(
        "access_log",
        ("host", "character varying", False, 64),
        ("path", "text"),
        ("status", "integer"),
        ("logged_at", "timestamp without time zone"),
    ),
    "payments": make_schema(
        "payments",
        ("payment_id", "text", False),
        ("amount", "numeric"),
        ("currency", "character", True, 3),
    ),
}


@pytest.fixture
def schemas() -> dict[str, TableSchema]:
    return dict(SCHEMAS)


@pytest.fixture
def fake_catalog(schemas) -> FakeCatalog:
    return FakeCatalog(schemas)


@pytest.fixture
def make_catalog(schemas):
    """Factory for catalogs with failing tables."""
    def _make(failures: dict[str, Exception] | None = None) -> FakeCatalog:
        return FakeCatalog(schemas, failures)
    return _make


@pytest.fixture
def fake_inserter() -> FakeInserter:
    return FakeInserter()


@pytest.fixture
def make_inserter():
    """Factory for inserters that fail with a given error."""
    def _make(error: Exception | None = None) -> FakeInserter:
        return FakeInserter(error)
    return _make


@pytest.fixture
def make_table_schema():
    return make_schema


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def config_dict() -> dict:
    """Raw configuration with two routed tables and a default."""
    return {
        "database": "events_test",
        "tables": [
            {
                "pattern": "access.**",
                "table": "access_log",
                "column_names": "host,path,status",
            },
            {
                "pattern": "payment.{card,wire}",
                "table": "payments",
                "key_names": ["id", "amount", "currency"],
                "column_names": ["payment_id", "amount", "currency"],
            },
            {
                "pattern": "default",
                "table": "events",
                "column_names": ["message"],
            },
        ],
    }


@pytest.fixture
def output_config(config_dict):
    return load_config_dict(config_dict)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

INIT_SQL = """
    CREATE TABLE events (
        id BIGSERIAL PRIMARY KEY,
        message TEXT,
        tag TEXT,
        logged_at TIMESTAMPTZ
    );
    CREATE TABLE access_log (
        id BIGSERIAL PRIMARY KEY,
        host VARCHAR(64) NOT NULL,
        path TEXT,
        status INTEGER,
        payload JSONB
    );
    CREATE TABLE payments (
        payment_id TEXT PRIMARY KEY,
        amount NUMERIC(12, 2),
        currency CHAR(3)
    );
"""


@pytest.fixture(scope="session")
def postgres_container() -> Generator:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with the test tables created
    """
    from testcontainers.postgres import PostgresContainer
    import psycopg

    container = PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_router",
        password="test_password",
        dbname="test_events",
    )
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Docker is not available: {e}")

    try:
        with psycopg.connect(
            host=container.get_container_host_ip(),
            port=int(container.get_exposed_port(5432)),
            dbname="test_events",
            user="test_router",
            password="test_password",
        ) as conn:
            with conn.cursor() as cur:
                cur.execute(INIT_SQL)
            conn.commit()
        yield container
    finally:
        container.stop()


@pytest.fixture
def db_pool(postgres_container):
    """Open a DatabaseConnectionPool against the container; tables are truncated after each test."""
    from sqlrouter.warehouse import DatabaseConnectionPool

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_events",
        user="test_router",
        password="test_password",
    )
    pool.open()
    try:
        yield pool
    finally:
        with pool.get_connection() as conn:
            conn.execute("TRUNCATE events, access_log, payments")
            conn.commit()
        pool.close()


@pytest.fixture(autouse=True)
def reset_router_logger():
    """Undo setup_logger() so caplog keeps seeing sqlrouter records."""
    yield
    logger = logging.getLogger("sqlrouter")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SQLROUTER_DB_* variables for config tests."""
    for key in list(os.environ):
        if key.startswith("SQLROUTER_DB_"):
            monkeypatch.delenv(key, raising=False)
