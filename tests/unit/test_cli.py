"""
Unit tests for the router CLI helpers.
"""

import pytest
import yaml
from psycopg import OperationalError

from sqlrouter.cli import router_cli
from sqlrouter.cli.router_cli import chunk_events, deliver_with_retry, main, read_events
from sqlrouter.config import load_config_dict
from sqlrouter.core.errors import BatchImportError, BindError, ConfigError
from sqlrouter.core.models import Event, EventBatch, ImportResult
from sqlrouter.output import SQLOutput
from sqlrouter.warehouse import DatabaseConnectionPool


@pytest.fixture
def configured(output_config) -> SQLOutput:
    output = SQLOutput()
    output.configure(output_config)
    return output


class FlakyOutput:
    """Output failing a fixed number of deliveries before succeeding."""

    def __init__(self, failures: int):
        self.failures = failures
        self.attempts = 0

    def deliver(self, batch):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise BatchImportError("events", RuntimeError("deadlock detected"))
        return ImportResult(table="events", received=len(batch.events), imported=len(batch.events))


class TestReadEvents:
    """Tests for read_events"""

    def test_reads_json_lines(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text(
            '{"tag": "access.nginx", "time": 100, "record": {"host": "a"}}\n'
            "\n"
            '{"tag": "audit"}\n'
        )

        events = list(read_events(path))

        assert events[0] == Event(tag="access.nginx", time=100, record={"host": "a"})
        assert events[1].tag == "audit"
        assert events[1].record == {}
        assert events[1].time > 0

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text("{not json\n")

        with pytest.raises(ValueError, match=":1:"):
            list(read_events(path))

    def test_missing_tag(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text('{"record": {}}\n')

        with pytest.raises(ValueError, match="tag"):
            list(read_events(path))


class TestChunkEvents:
    """Tests for chunk_events"""

    def test_groups_by_routing_key(self, configured):
        events = [
            Event(tag="access.a", time=1, record={}),
            Event(tag="audit", time=2, record={}),
            Event(tag="access.a", time=3, record={}),
        ]

        batches = list(chunk_events(configured, events, chunk_size=10))

        assert [(b.key, len(b.events)) for b in batches] == [("access.a", 2), ("audit", 1)]

    def test_full_chunks_are_emitted_early(self, configured):
        events = [Event(tag="audit", time=i, record={}) for i in range(5)]

        batches = list(chunk_events(configured, events, chunk_size=2))

        assert [len(b.events) for b in batches] == [2, 2, 1]

    def test_prefix_removed_from_key(self, config_dict):
        config_dict["remove_tag_prefix"] = "app."
        output = SQLOutput()
        output.configure(load_config_dict(config_dict))

        batches = list(chunk_events(output, [Event(tag="app.access.x", time=0, record={})], 10))

        assert batches[0].key == "access.x"
        assert batches[0].events[0].tag == "app.access.x"

    def test_single_key_when_only_default(self):
        output = SQLOutput()
        output.configure(load_config_dict({"tables": [{"table": "events", "column_names": "message"}]}))
        events = [Event(tag="a", time=0, record={}), Event(tag="b", time=0, record={})]

        batches = list(chunk_events(output, events, 10))

        assert len(batches) == 1
        assert len(batches[0].events) == 2


class TestDeliverWithRetry:
    """Tests for deliver_with_retry"""

    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        delays = []
        monkeypatch.setattr(router_cli.time, "sleep", delays.append)
        return delays

    def test_retries_until_success(self, no_sleep):
        output = FlakyOutput(failures=2)

        result = deliver_with_retry(output, EventBatch.from_triples("k", [("k", 0, {})]), retry_delay=0.5)

        assert result.imported == 1
        assert output.attempts == 3
        assert no_sleep == [0.5, 1.0]

    def test_gives_up_after_max_retries(self):
        output = FlakyOutput(failures=10)

        with pytest.raises(BatchImportError):
            deliver_with_retry(output, EventBatch(key="k"), max_retries=2)

        assert output.attempts == 3


class TestMain:
    """Tests for the CLI entry point"""

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])

        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_config_fails(self, tmp_path):
        events = tmp_path / "events.jsonl"
        events.write_text("")

        with pytest.raises(SystemExit) as exc:
            main(["--log-format", "text", "load", "--config", str(tmp_path / "nope.yaml"), "--input", str(events)])

        assert exc.value.code == 1

    def test_check_with_missing_config_fails(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["check", "--config", str(tmp_path / "nope.yaml")])

        assert exc.value.code == 1


class TestStartOutput:
    """Tests for startup failures before any table is bound"""

    @pytest.fixture
    def write_config(self, tmp_path, config_dict):
        def _write(**overrides) -> str:
            config_dict.update(overrides)
            path = tmp_path / "output.yaml"
            path.write_text(yaml.safe_dump(config_dict))
            return str(path)
        return _write

    @pytest.fixture
    def unreachable(self, monkeypatch):
        def refuse(self, max_retries=3, retry_delay=2.0):
            raise OperationalError("connection refused")
        monkeypatch.setattr(DatabaseConnectionPool, "open", refuse)

    def test_missing_database_is_config_error(self, write_config, clean_env):
        path = write_config(database=None)

        with pytest.raises(ConfigError, match="Database name"):
            router_cli.start_output(path)

    def test_unreachable_database_fails_default_table(self, write_config, unreachable):
        path = write_config(connect_retries=1)

        with pytest.raises(BindError) as exc:
            router_cli.start_output(path)

        assert exc.value.table == "events"
        assert isinstance(exc.value.cause, OperationalError)

    def test_pool_closed_when_start_fails(self, write_config, monkeypatch):
        closed = []
        monkeypatch.setattr(DatabaseConnectionPool, "open", lambda self, max_retries=3: None)
        monkeypatch.setattr(DatabaseConnectionPool, "close", lambda self: closed.append(self))

        def broken_start(self, catalog, inserter, owned=()):
            raise RuntimeError("catalog unavailable")
        monkeypatch.setattr(SQLOutput, "start", broken_start)

        with pytest.raises(RuntimeError):
            router_cli.start_output(write_config())

        assert len(closed) == 1

    @pytest.mark.parametrize("command", ["check", "load"])
    def test_startup_failures_exit_cleanly(self, write_config, clean_env, tmp_path, command):
        events = tmp_path / "events.jsonl"
        events.write_text("")
        argv = [command, "--config", write_config(database=None)]
        if command == "load":
            argv += ["--input", str(events)]

        with pytest.raises(SystemExit) as exc:
            main(argv)

        assert exc.value.code == 1

    def test_unreachable_database_exits_cleanly(self, write_config, unreachable):
        with pytest.raises(SystemExit) as exc:
            main(["check", "--config", write_config()])

        assert exc.value.code == 1
