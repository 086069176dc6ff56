"""Place store adapter: one-shot fetch and insert of user-submitted places."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from pawmap.exceptions import MalformedRecordError
from pawmap.models.place import Place, PlaceSource
from pawmap.store import SERVER_TIMESTAMP, DocumentStore, StoredDocument

_logger = logging.getLogger(__name__)

ORDER_FIELD = "createdAt"


def decode_place(collection: str, document: StoredDocument) -> Place:
    """Decode one user-submitted place document.

    Raises
    ------
    MalformedRecordError
        If ``name``, ``lat`` or ``lng`` is missing or invalid.
    """
    try:
        return Place.model_validate(
            {
                **document.fields,
                "id": document.id,
                "source": PlaceSource.USER_SUBMITTED,
                "photo_refs": (),
            }
        )
    except (ValidationError, ValueError) as exc:
        raise MalformedRecordError(
            f"Malformed place {document.id!r} in {collection}: {exc}",
            collection=collection,
            document_id=document.id,
        ) from exc


async def fetch_user_places(store: DocumentStore, collection: str, limit: int) -> list[Place]:
    """Fetch the *limit* newest user-submitted places, newest first."""
    documents = await store.query(collection, order_by=ORDER_FIELD, descending=True, limit=limit)
    places: list[Place] = []
    for document in documents[:limit]:
        try:
            places.append(decode_place(collection, document))
        except MalformedRecordError as exc:
            _logger.warning("%s", exc)
    _logger.debug("Fetched %d places from %s", len(places), collection)
    return places


async def insert_place(
    store: DocumentStore,
    collection: str,
    fields: Mapping[str, Any],
    *,
    author_id: str | None,
    photo_url: str | None = None,
) -> str:
    """Write a new place with ``upvotes=0`` and a server timestamp."""
    document: dict[str, Any] = {key: value for key, value in fields.items() if value is not None}
    if photo_url:
        document["photoUrl"] = photo_url
    document["upvotes"] = 0
    document["authorId"] = author_id
    document["createdAt"] = SERVER_TIMESTAMP
    doc_id = await store.insert(collection, document)
    _logger.debug("Place created in %s with id %s", collection, doc_id)
    return doc_id
