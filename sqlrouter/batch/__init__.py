"""
Batch import of routed event chunks.
"""

from .importer import BatchImporter

__all__ = ["BatchImporter"]
