"""
SQL output: configuration, startup binding and batch dispatch.
"""

from .sql_output import SQLOutput

__all__ = ["SQLOutput"]
