"""
Batch importer: converts a batch of events and bulk-inserts the survivors.
"""

import json
import logging
import time

from sqlrouter.core.binding import TableBinding
from sqlrouter.core.models import EventBatch, ImportResult
from sqlrouter.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


def dump_record(record) -> str:
    """Serialize a record for log output; never fails."""
    try:
        return json.dumps(record, default=str)
    except (TypeError, ValueError):
        return repr(record)


class BatchImporter:
    """
    Imports one batch into one bound table.

    Records that cannot be converted are logged and dropped one by one;
    the rest of the batch goes out in a single bulk insert. A failing bulk
    insert fails the whole batch and propagates to the caller.
    """

    def __init__(self, inserter, metrics: MetricsCollector | None = None):
        """
        Initialize batch importer.

        Args:
            inserter: Object exposing insert_rows(table, columns, rows)
            metrics: Optional metrics collector
        """
        self.inserter = inserter
        self.metrics = metrics or MetricsCollector()

    def import_batch(self, binding: TableBinding, batch: EventBatch) -> ImportResult:
        """
        Convert every event of a batch and insert the valid rows.

        Args:
            binding: Active destination binding
            batch: Events to import

        Returns:
            ImportResult with imported and dropped counts

        Raises:
            Exception: Whatever the bulk insert raises, unmodified
        """
        table = binding.table_name
        result = ImportResult(table=table, received=len(batch.events))
        rows = []

        for event in batch.events:
            try:
                row = binding.mapper.format(event.record)
                rows.append(binding.validator.validate(row))
            except Exception as e:
                logger.warning(
                    "Failed to create the row. Ignore a record:",
                    extra={
                        "error": str(e),
                        "error_class": e.__class__.__name__,
                        "table": table,
                        "record": dump_record(event.record),
                    },
                )
                result.dropped += 1
                result.errors.append(f"{e.__class__.__name__}: {e}")

        if not rows:
            logger.info(
                f"No rows left to insert into '{table}'",
                extra={"table": table, "dropped": result.dropped},
            )
            self.metrics.record_import(table, imported=0, dropped=result.dropped, duration=0.0)
            return result

        start = time.perf_counter()
        try:
            self.inserter.insert_rows(table, binding.columns, rows)
        except Exception:
            self.metrics.record_import_failure(table, dropped=result.dropped)
            logger.error(
                f"Bulk insert into '{table}' failed for {len(rows)} rows",
                extra={"table": table, "rows": len(rows)},
            )
            raise
        duration = time.perf_counter() - start

        result.imported = len(rows)
        self.metrics.record_import(table, imported=result.imported, dropped=result.dropped, duration=duration)
        logger.debug(
            f"Imported {result.imported} rows into '{table}'",
            extra={"table": table, "imported": result.imported, "dropped": result.dropped},
        )
        return result
