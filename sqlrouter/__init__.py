"""
sql-event-router: route tagged event batches into relational tables.
"""

__version__ = "0.1.0"
