from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pawmap.identity import Actor
from pawmap.store import ErrorCallback, SnapshotCallback, StoredDocument

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def message_doc(doc_id: str, text: str, minute: int | None, *, user: str = "u1", name: str = "Ada") -> StoredDocument:
    created = (BASE_TIME + timedelta(minutes=minute)).isoformat() if minute is not None else None
    return StoredDocument(
        id=doc_id,
        fields={"text": text, "userId": user, "username": name, "createdAt": created},
    )


def place_doc(doc_id: str, name: str, lat: float, lng: float, type_: str = "park", **extra: Any) -> StoredDocument:
    return StoredDocument(
        id=doc_id,
        fields={"name": name, "type": type_, "lat": lat, "lng": lng, "createdAt": BASE_TIME.isoformat(), **extra},
    )


@dataclass
class FakeLiveQuery:
    collection: str
    limit: int | None
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    closed: bool = False
    close_calls: int = 0

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    def emit(self, documents: list[StoredDocument]) -> None:
        # Delivered even after close, like a snapshot already queued by the transport.
        self.on_snapshot(documents)

    def fail(self, error: BaseException) -> None:
        self.on_error(error)


@dataclass
class FakeDocumentStore:
    collections: dict[str, list[StoredDocument]] = field(default_factory=dict)
    inserts: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    queries: list[tuple[str, str, bool, int | None]] = field(default_factory=list)
    watches: list[FakeLiveQuery] = field(default_factory=list)
    insert_error: Exception | None = None
    query_error: Exception | None = None
    watch_error: Exception | None = None

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        self.inserts.append((collection, dict(fields)))
        if self.insert_error is not None:
            raise self.insert_error
        return f"{collection}-{len(self.inserts)}"

    async def query(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        self.queries.append((collection, order_by, descending, limit))
        if self.query_error is not None:
            raise self.query_error
        documents = list(self.collections.get(collection, []))
        return documents[:limit] if limit is not None else documents

    def watch(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> FakeLiveQuery:
        if self.watch_error is not None:
            raise self.watch_error
        live = FakeLiveQuery(collection=collection, limit=limit, on_snapshot=on_snapshot, on_error=on_error)
        self.watches.append(live)
        return live


@dataclass
class StaticIdentity:
    actor: Actor | None = None

    def current_actor(self) -> Actor | None:
        return self.actor


@dataclass
class FakeUploader:
    url: str = "https://cdn.example.com/img/1.jpg"
    error: Exception | None = None
    uploaded: list[Any] = field(default_factory=list)

    async def upload(self, image: Any) -> str:
        self.uploaded.append(image)
        if self.error is not None:
            raise self.error
        return self.url


@dataclass
class FakeTransport:
    """Routes requests by URL suffix to canned JSON bodies."""

    responses: dict[str, Any] = field(default_factory=dict)
    redirects: dict[str, str | None] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, str, dict[str, Any] | None, Any]] = field(default_factory=list)

    def _route(self, url: str) -> str:
        for suffix in sorted(set(self.responses) | set(self.errors) | set(self.redirects), key=len, reverse=True):
            if url.endswith(suffix):
                return suffix
        raise AssertionError(f"Unexpected URL in fake transport: {url}")

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        self.calls.append((method, url, dict(params) if params else None, json_body))
        route = self._route(url)
        if route in self.errors:
            raise self.errors[route]
        return self.responses[route]

    async def resolve_redirect(self, url: str, *, params: Mapping[str, Any] | None = None) -> str | None:
        self.calls.append(("REDIRECT", url, dict(params) if params else None, None))
        route = self._route(url)
        if route in self.errors:
            raise self.errors[route]
        target = self.redirects.get(route)
        if target is None:
            return None
        return f"{target}/{params['photoreference']}" if params else target


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def actor() -> Actor:
    return Actor(id="u1", display_name="Ada", email="ada@example.com")


@pytest.fixture
def identity(actor: Actor) -> StaticIdentity:
    return StaticIdentity(actor)
