"""
Routing of grouping keys to bound tables.
"""

import logging

from sqlrouter.core.binding import TableBinding

from .patterns import MatchPattern

logger = logging.getLogger(__name__)


class TableRouter:
    """
    Resolves a grouping key to exactly one active TableBinding.

    Non-default bindings are tried in declaration order and the first
    matching pattern wins. Keys that match nothing go to the default.
    """

    def __init__(self, bindings: list[TableBinding], default: TableBinding):
        """
        Initialize the router.

        Args:
            bindings: Non-default bindings in declaration order; inactive
                bindings are skipped
            default: The default binding, which must be active

        Raises:
            ValueError: If the default binding is missing, inactive or
                not the default table
        """
        if default is None or not default.active:
            raise ValueError("An active default table binding is required")
        if not default.spec.is_default:
            raise ValueError(f"Table '{default.table_name}' is not a default table")

        self.default = default
        self.routes: list[tuple[MatchPattern, TableBinding]] = []

        seen: dict[str, str] = {}
        for binding in bindings:
            if not binding.active:
                continue
            if binding.spec.is_default:
                raise ValueError(f"Duplicate default table '{binding.table_name}'")
            pattern_text = binding.spec.pattern
            if pattern_text in seen:
                logger.warning(
                    f"Pattern '{pattern_text}' of table '{binding.table_name}' is shadowed "
                    f"by table '{seen[pattern_text]}'",
                    extra={"pattern": pattern_text, "table": binding.table_name},
                )
            else:
                seen[pattern_text] = binding.table_name
            self.routes.append((MatchPattern.create(pattern_text), binding))

    @property
    def only_default(self) -> bool:
        return not self.routes

    @property
    def tables(self) -> list[str]:
        """Active table names in routing order, default last."""
        return [b.table_name for _, b in self.routes] + [self.default.table_name]

    def resolve(self, key: str) -> TableBinding:
        """
        Pick the destination binding for a grouping key.

        Args:
            key: Grouping key of the batch

        Returns:
            First matching binding, or the default binding
        """
        if self.only_default:
            return self.default

        for pattern, binding in self.routes:
            if pattern.match(key):
                return binding
        return self.default
