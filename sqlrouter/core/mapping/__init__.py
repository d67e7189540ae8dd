from .field_mapper import FieldMapper

__all__ = ["FieldMapper"]
