"""
Command-line interface for the SQL event router.

Usage:
    python -m sqlrouter.cli.router_cli check --config <config.yaml>
    python -m sqlrouter.cli.router_cli load --config <config.yaml> --input <events.jsonl> [options]
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Iterator

from psycopg import OperationalError

from sqlrouter.config import ConfigLoader
from sqlrouter.core.errors import BindError, ConfigError
from sqlrouter.core.models import Event, EventBatch, ImportResult
from sqlrouter.observability.logger import log_operation, setup_logger
from sqlrouter.observability.metrics import start_metrics_server
from sqlrouter.output import SQLOutput
from sqlrouter.warehouse import BulkInserter, DatabaseConnectionPool, SchemaCatalog

logger = logging.getLogger("sqlrouter.cli")


def read_events(path: str | Path) -> Iterator[Event]:
    """
    Read events from a JSON-lines file.

    Each line holds {"tag": ..., "time": ..., "record": {...}}. Blank
    lines are skipped; time defaults to the current time.

    Raises:
        ValueError: If a line is not valid JSON or lacks a tag
    """
    with open(path) as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if not isinstance(data, dict) or "tag" not in data:
                raise ValueError(f"{path}:{lineno}: event must be an object with a 'tag'")
            yield Event(
                tag=data["tag"],
                time=int(data.get("time", time.time())),
                record=data.get("record", {}),
            )


def chunk_events(output: SQLOutput, events: Iterable[Event], chunk_size: int) -> Iterator[EventBatch]:
    """
    Group events into batches by routing key.

    Batches are emitted when they reach chunk_size; partial batches are
    flushed at the end in first-seen key order.
    """
    pending: dict[str, list[Event]] = {}
    for event in events:
        key = "" if output.only_default else output.routing_key(event.tag)
        chunk = pending.setdefault(key, [])
        chunk.append(event)
        if len(chunk) >= chunk_size:
            yield EventBatch(key=key, events=pending.pop(key))

    for key, chunk in pending.items():
        yield EventBatch(key=key, events=chunk)


def deliver_with_retry(
    output: SQLOutput,
    batch: EventBatch,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> ImportResult:
    """
    Deliver a batch, retrying failed bulk inserts with linear backoff.

    Raises:
        Exception: The last failure once retries are exhausted
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return output.deliver(batch)
        except Exception as e:
            if attempt > max_retries:
                raise
            logger.warning(
                f"Batch for key '{batch.key}' failed (attempt {attempt}), retrying: {e}",
                extra={"key": batch.key, "attempt": attempt, "events": len(batch.events)},
            )
            time.sleep(retry_delay * attempt)


def start_output(config_path: str) -> SQLOutput:
    """
    Load configuration, connect and bind all tables.

    Raises:
        ConfigError: If the configuration or connection settings are invalid
        BindError: If the database is unreachable or the default table
            cannot be bound
    """
    config = ConfigLoader(config_path).load()

    output = SQLOutput()
    output.configure(config)

    try:
        pool = DatabaseConnectionPool.from_config(config)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    # an unreachable database fails the default table like any bind error
    try:
        pool.open(max_retries=config.connect_retries)
    except OperationalError as e:
        raise BindError(config.default_table.table, e) from e

    try:
        output.start(SchemaCatalog(pool), BulkInserter(pool), owned=[pool])
    except Exception:
        pool.close()
        raise
    return output


def check_command(args) -> int:
    """Bind every table and report which ones are active."""
    try:
        output = start_output(args.config)
    except (ConfigError, BindError) as e:
        logger.error(f"Startup failed: {e}")
        return 1

    try:
        for name in output.router.tables:
            logger.info(f"active: {name}", extra={"table": name, "active": True})
        for binding in output.inactive:
            logger.warning(
                f"inactive: {binding.table_name} ({binding.error})",
                extra={"table": binding.table_name, "active": False},
            )
    finally:
        output.shutdown()
    return 0


def load_command(args) -> int:
    """Route and import a JSON-lines file of events."""
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        output = start_output(args.config)
    except (ConfigError, BindError) as e:
        logger.error(f"Startup failed: {e}")
        return 1

    failed = 0
    imported = 0
    dropped = 0
    try:
        with log_operation("Loading events", logger, input=str(input_path)):
            for batch in chunk_events(output, read_events(input_path), args.chunk_size):
                try:
                    result = deliver_with_retry(
                        output, batch, max_retries=args.max_retries, retry_delay=args.retry_delay
                    )
                except Exception as e:
                    failed += 1
                    logger.error(
                        f"Giving up on batch for key '{batch.key}': {e}",
                        extra={"key": batch.key, "events": len(batch.events)},
                    )
                    continue
                imported += result.imported
                dropped += result.dropped
    finally:
        output.shutdown()

    logger.info(
        f"Imported {imported} rows, dropped {dropped} records, {failed} failed batches",
        extra={"imported": imported, "dropped": dropped, "failed_batches": failed},
    )
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Route tagged events into SQL tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check which tables bind
  python -m sqlrouter.cli.router_cli check --config config/output.yaml

  # Load events in chunks of 500
  python -m sqlrouter.cli.router_cli load --config config/output.yaml \\
      --input data/events.jsonl --chunk-size 500
        """
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    parser.add_argument(
        "--log-format", default="json", choices=["json", "text"], help="Log format (default: json)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    check_parser = subparsers.add_parser("check", help="Bind tables and report their status")
    check_parser.add_argument("--config", required=True, help="Path to output YAML file")

    load_parser = subparsers.add_parser("load", help="Import a JSON-lines event file")
    load_parser.add_argument("--config", required=True, help="Path to output YAML file")
    load_parser.add_argument("--input", required=True, help="Path to JSON-lines event file")
    load_parser.add_argument(
        "--chunk-size", type=int, default=1000, help="Events per batch (default: 1000)"
    )
    load_parser.add_argument(
        "--max-retries", type=int, default=3, help="Retries per failed batch (default: 3)"
    )
    load_parser.add_argument(
        "--retry-delay", type=float, default=1.0, help="Base retry delay in seconds (default: 1.0)"
    )
    load_parser.add_argument(
        "--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port"
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logger(level=args.log_level, format_type=args.log_format)

    if args.command == "check":
        sys.exit(check_command(args))
    if args.command == "load":
        if args.chunk_size < 1:
            parser.error("--chunk-size must be positive")
        if args.metrics_port:
            start_metrics_server(args.metrics_port)
        sys.exit(load_command(args))


if __name__ == "__main__":
    main()
