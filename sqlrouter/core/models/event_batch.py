"""
Event and EventBatch models delivered by the buffering layer (ephemeral).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """
    A single buffered event.

    Attributes:
        tag: Original event tag
        time: Event time as epoch seconds
        record: Raw record, normally a mapping of field name to value
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    time: int
    record: Any


class EventBatch(BaseModel):
    """
    A chunk of events sharing one grouping key.

    The batch is imported atomically: either every surviving row is sent in
    one bulk insert, or the whole batch fails.
    """

    key: str
    events: list[Event] = Field(default_factory=list)

    @classmethod
    def from_triples(cls, key: str, triples) -> "EventBatch":
        """Build a batch from (tag, time, record) triples."""
        return cls(
            key=key,
            events=[Event(tag=tag, time=time, record=record) for tag, time, record in triples],
        )
