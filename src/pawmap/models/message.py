"""Chat message model."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from pawmap.models._base import PawmapBaseModel, StoreTimestamp


class Message(PawmapBaseModel):
    """A message posted to the shared room.

    Fields are mapped from documents in the messages collection
    (``text``, ``userId``, ``username``, ``createdAt``).
    """

    id: str
    """Store-assigned document id."""
    text: str
    """Message body; never blank."""
    author_id: str = Field(validation_alias=AliasChoices("userId", "authorId", "author_id"))
    """Stable identifier of the author."""
    author_name: str = Field(validation_alias=AliasChoices("username", "authorName", "author_name"))
    """Display name of the author at the time of posting."""
    created_at: StoreTimestamp = None
    """Commit time assigned by the store; ``None`` until the write is acknowledged."""
