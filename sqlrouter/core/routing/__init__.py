"""
Grouping-key matching and table routing.
"""

from .patterns import (
    ExactMatchPattern,
    GlobMatchPattern,
    MatchPattern,
    OrMatchPattern,
    PrefixMatchPattern,
)
from .router import TableRouter

__all__ = [
    "MatchPattern",
    "ExactMatchPattern",
    "PrefixMatchPattern",
    "GlobMatchPattern",
    "OrMatchPattern",
    "TableRouter",
]
