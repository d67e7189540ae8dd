"""
Startup binding of table specifications.
"""

from .table_binding import TableBinding, bind_table

__all__ = ["TableBinding", "bind_table"]
