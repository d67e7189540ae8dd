"""
SQL output orchestration.

Coordinates the flow: configure → start (bind tables) → deliver batches
(resolve table → import batch).
"""

import logging
import re
from datetime import datetime, timezone

from sqlrouter.batch import BatchImporter
from sqlrouter.config import OutputConfig
from sqlrouter.core.binding import TableBinding, bind_table
from sqlrouter.core.errors import BindError, ConfigError
from sqlrouter.core.mapping import FieldMapper
from sqlrouter.core.models import Event, EventBatch, ImportResult, TableSpec
from sqlrouter.core.routing import MatchPattern, TableRouter
from sqlrouter.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class SQLOutput:
    """
    Routes event batches to SQL tables.

    Lifecycle:
    1. configure() validates the table list and builds field mappers
    2. start() binds every table; non-default failures are dropped with a
       warning, a default failure aborts startup
    3. deliver() imports each batch into the table its key resolves to
    """

    def __init__(self, metrics: MetricsCollector | None = None):
        self.metrics = metrics or MetricsCollector()
        self.config: OutputConfig | None = None
        self.router: TableRouter | None = None
        self.importer: BatchImporter | None = None
        self.inactive: list[TableBinding] = []
        self._mappers: dict[int, FieldMapper] = {}
        self._prefix_regex: re.Pattern | None = None
        self._owned: list = []

    # =======================
    # CONFIGURATION
    # =======================

    def configure(self, config: OutputConfig) -> None:
        """
        Apply a loaded configuration.

        Args:
            config: Output configuration

        Raises:
            ConfigError: If the default table is missing or duplicated,
                or a pattern cannot be compiled
        """
        defaults = [t for t in config.tables if t.is_default]
        if len(defaults) != 1:
            raise ConfigError(
                f"Exactly one default table is required in sql output, found {len(defaults)}"
            )

        for spec in config.routed_tables:
            try:
                MatchPattern.create(spec.pattern)
            except ValueError as e:
                raise ConfigError(f"Invalid pattern for table '{spec.table}': {e}") from e

        self.config = config
        self._mappers = {id(spec): FieldMapper(spec) for spec in config.tables}

        if config.remove_tag_prefix:
            self._prefix_regex = re.compile("^" + re.escape(config.remove_tag_prefix))
        else:
            self._prefix_regex = None

    @property
    def only_default(self) -> bool:
        if self.router is not None:
            return self.router.only_default
        return self.config is not None and not self.config.routed_tables

    # =======================
    # STARTUP
    # =======================

    def start(self, catalog, inserter, owned=()) -> None:
        """
        Bind all tables and prepare the importer.

        Args:
            catalog: Object exposing introspect_table(name)
            inserter: Object exposing insert_rows(table, columns, rows)
            owned: Resources with close() to release on shutdown()

        Raises:
            RuntimeError: If configure() has not been called
            BindError: If the default table cannot be bound
        """
        if self.config is None:
            raise RuntimeError("SQLOutput is not configured. Call configure() first.")

        self._owned = list(owned)
        self.inactive = []

        # ignore tables whose binding failed
        bindings = []
        for spec in self.config.routed_tables:
            binding = self._init_table(spec, catalog)
            if binding.active:
                bindings.append(binding)
            else:
                self.inactive.append(binding)

        default_spec = self.config.default_table
        default = self._init_table(default_spec, catalog, fatal=True)
        if not default.active:
            raise default.error

        self.router = TableRouter(bindings, default)
        self.importer = BatchImporter(inserter, metrics=self.metrics)
        self.metrics.set_active_tables(len(self.router.tables))

    def _init_table(self, spec: TableSpec, catalog, fatal: bool = False) -> TableBinding:
        mapper = self._mappers[id(spec)]
        try:
            binding = bind_table(spec, mapper, catalog)
        except BindError as e:
            extra = {"table": spec.table, "error": str(e.cause)}
            if fatal:
                logger.error(f"Can't handle default table '{spec.table}'", extra=extra, exc_info=True)
            else:
                logger.warning(f"Can't handle '{spec.table}' table. Ignoring.", extra=extra, exc_info=True)
            self.metrics.record_bind_failure(spec.table)
            return TableBinding(spec, mapper, error=e)

        logger.info(f"Selecting '{spec.table}' table", extra={"table": spec.table})
        return binding

    def shutdown(self) -> None:
        """Release resources handed over at start()."""
        for resource in self._owned:
            resource.close()
        self._owned = []

    # =======================
    # RUNTIME
    # =======================

    def routing_key(self, tag: str) -> str:
        """
        Derive the grouping key for an event tag.

        The configured prefix is removed from the start of the tag only.
        """
        if self._prefix_regex is None:
            return tag
        return self._prefix_regex.sub("", tag, count=1)

    def decorate(self, event: Event) -> Event:
        """
        Add the tag and/or formatted time to a copy of the event record.

        Records that are not mappings are returned untouched so the
        importer can reject them individually.
        """
        config = self.config
        if not (config.include_tag_key or config.include_time_key):
            return event
        if not isinstance(event.record, dict):
            return event

        record = dict(event.record)
        if config.include_time_key:
            record[config.time_key] = self.format_time(event.time)
        if config.include_tag_key:
            record[config.tag_key] = event.tag
        return Event(tag=event.tag, time=event.time, record=record)

    def format_time(self, time: int) -> str:
        tz = timezone.utc if self.config.utc else None
        moment = datetime.fromtimestamp(time, tz=tz)
        if tz is None:
            moment = moment.astimezone()
        if self.config.time_format:
            return moment.strftime(self.config.time_format)
        return moment.isoformat()

    def resolve(self, key: str) -> TableBinding:
        if self.router is None:
            raise RuntimeError("SQLOutput is not started. Call start() first.")
        return self.router.resolve(key)

    def deliver(self, batch: EventBatch) -> ImportResult:
        """
        Import one batch into the table its key resolves to.

        Args:
            batch: Buffered events sharing one grouping key

        Returns:
            ImportResult of the import

        Raises:
            Exception: Any bulk insert failure, unmodified, so the caller
                can retry the batch
        """
        binding = self.resolve(batch.key)
        if self.config.include_tag_key or self.config.include_time_key:
            batch = EventBatch(key=batch.key, events=[self.decorate(e) for e in batch.events])
        return self.importer.import_batch(binding, batch)
