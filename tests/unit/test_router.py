"""
Unit tests for table routing.
"""

import logging

import pytest

from sqlrouter.core.binding import TableBinding, bind_table
from sqlrouter.core.errors import BindError, TableNotFoundError
from sqlrouter.core.mapping import FieldMapper
from sqlrouter.core.models import TableSpec
from sqlrouter.core.routing import TableRouter


def bound(catalog, table: str, pattern: str = "default", columns=("message",)) -> TableBinding:
    spec = TableSpec(table=table, pattern=pattern, column_names=list(columns))
    return bind_table(spec, FieldMapper(spec), catalog)


class TestTableRouter:
    """Tests for TableRouter.resolve"""

    def test_first_match_wins(self, fake_catalog):
        first = bound(fake_catalog, "access_log", "access.**", ["host"])
        second = bound(fake_catalog, "payments", "access.nginx", ["payment_id"])
        default = bound(fake_catalog, "events")

        router = TableRouter([first, second], default)

        assert router.resolve("access.nginx") is first

    def test_declaration_order_decides(self, fake_catalog):
        first = bound(fake_catalog, "payments", "access.nginx", ["payment_id"])
        second = bound(fake_catalog, "access_log", "access.**", ["host"])
        default = bound(fake_catalog, "events")

        router = TableRouter([first, second], default)

        assert router.resolve("access.nginx") is first
        assert router.resolve("access.apache") is second

    def test_unmatched_key_goes_to_default(self, fake_catalog):
        access = bound(fake_catalog, "access_log", "access.**", ["host"])
        default = bound(fake_catalog, "events")

        router = TableRouter([access], default)

        assert router.resolve("audit.login") is default
        assert router.resolve("") is default

    def test_only_default_short_circuits(self, fake_catalog):
        default = bound(fake_catalog, "events")
        router = TableRouter([], default)

        assert router.only_default is True
        assert router.resolve("anything.at.all") is default
        assert router.tables == ["events"]

    def test_inactive_bindings_are_skipped(self, fake_catalog):
        spec = TableSpec(table="missing", pattern="audit.*", column_names=["x"])
        inactive = TableBinding(spec, FieldMapper(spec), error=BindError("missing", TableNotFoundError("missing")))
        default = bound(fake_catalog, "events")

        router = TableRouter([inactive], default)

        assert router.only_default is True
        assert router.resolve("audit.login") is default
        assert "missing" not in router.tables

    def test_requires_active_default(self, fake_catalog):
        spec = TableSpec(table="events", column_names=["message"])
        inactive_default = TableBinding(spec, FieldMapper(spec), error=BindError("events", RuntimeError("down")))

        with pytest.raises(ValueError):
            TableRouter([], inactive_default)

    def test_rejects_non_default_as_default(self, fake_catalog):
        access = bound(fake_catalog, "access_log", "access.**", ["host"])

        with pytest.raises(ValueError):
            TableRouter([], access)

    def test_rejects_second_default(self, fake_catalog):
        default = bound(fake_catalog, "events")
        other = bound(fake_catalog, "payments", columns=["payment_id"])

        with pytest.raises(ValueError):
            TableRouter([other], default)

    def test_duplicate_pattern_warns_but_keeps_precedence(self, fake_catalog, caplog):
        first = bound(fake_catalog, "access_log", "access.**", ["host"])
        second = bound(fake_catalog, "payments", "access.**", ["payment_id"])
        default = bound(fake_catalog, "events")

        with caplog.at_level(logging.WARNING, logger="sqlrouter"):
            router = TableRouter([first, second], default)

        assert any("shadowed" in r.getMessage() for r in caplog.records)
        assert router.resolve("access.x") is first
