"""Message store adapter.

Maps feed operations onto the messages collection:
  - append (insert with a server timestamp)
  - latest-N live query ordered by ``createdAt`` descending
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from pawmap.exceptions import MalformedRecordError
from pawmap.identity import Actor
from pawmap.models.message import Message
from pawmap.store import SERVER_TIMESTAMP, DocumentStore, ErrorCallback, LiveQuery, StoredDocument

_logger = logging.getLogger(__name__)

ORDER_FIELD = "createdAt"


def decode_message(collection: str, document: StoredDocument) -> Message:
    """Decode one document into a :class:`Message`.

    Raises
    ------
    MalformedRecordError
        If the document lacks ``text``, ``userId`` or ``username`` or has an
        unparseable ``createdAt``.
    """
    try:
        return Message.model_validate({**document.fields, "id": document.id})
    except (ValidationError, ValueError) as exc:
        raise MalformedRecordError(
            f"Malformed message {document.id!r} in {collection}: {exc}",
            collection=collection,
            document_id=document.id,
        ) from exc


def decode_messages(collection: str, documents: list[StoredDocument]) -> list[Message]:
    """Decode a snapshot, dropping malformed documents with a warning."""
    messages: list[Message] = []
    for document in documents:
        try:
            messages.append(decode_message(collection, document))
        except MalformedRecordError as exc:
            _logger.warning("%s", exc)
    return messages


async def append_message(store: DocumentStore, collection: str, actor: Actor, text: str) -> str:
    """Insert a message authored by *actor*; returns the new document id."""
    return await store.insert(
        collection,
        {
            "text": text,
            "userId": actor.id,
            "username": actor.author_name,
            "createdAt": SERVER_TIMESTAMP,
        },
    )


def watch_latest_messages(
    store: DocumentStore,
    collection: str,
    limit: int,
    *,
    on_messages: Callable[[list[Message]], None],
    on_error: ErrorCallback,
) -> LiveQuery:
    """Live query over the *limit* newest messages, newest first."""

    def _on_snapshot(documents: list[StoredDocument]) -> None:
        on_messages(decode_messages(collection, documents))

    return store.watch(
        collection,
        order_by=ORDER_FIELD,
        descending=True,
        limit=limit,
        on_snapshot=_on_snapshot,
        on_error=on_error,
    )
