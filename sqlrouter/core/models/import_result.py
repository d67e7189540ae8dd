"""
ImportResult model summarising one batch import.
"""

from pydantic import BaseModel, Field


class ImportResult(BaseModel):
    """
    Outcome of importing one batch into a table.

    Attributes:
        table: Destination table
        received: Events in the batch
        imported: Rows handed to the bulk insert
        dropped: Records that failed conversion
        errors: One message per dropped record
    """

    table: str
    received: int = 0
    imported: int = 0
    dropped: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.received == 0:
            return 1.0
        return self.imported / self.received
