"""
Schema descriptor of a live destination table, built by introspection.
"""

from pydantic import BaseModel, ConfigDict, Field


class ColumnSchema(BaseModel):
    """
    One column of a destination table.

    Attributes:
        name: Column name
        data_type: information_schema data type (e.g. "integer", "text")
        nullable: Whether NULL is accepted
        max_length: character_maximum_length for character types
        has_default: Whether the column declares a default
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    data_type: str = "text"
    nullable: bool = True
    max_length: int | None = None
    has_default: bool = False


class TableSchema(BaseModel):
    """
    Introspected column set of a destination table.

    Columns are kept in ordinal order.
    """

    model_config = ConfigDict(frozen=True)

    table_name: str
    schema_name: str | None = None
    columns: list[ColumnSchema] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSchema | None:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.columns)
