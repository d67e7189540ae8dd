"""
Row validation against introspected table schemas.
"""

from .row_validator import RowValidator

__all__ = ["RowValidator"]
