"""Remote document store client.

Adapters talk to the store only through the :class:`DocumentStore` protocol so
tests (and alternative backends) can pass their own implementation. The
production :class:`HttpDocumentStore` reads and writes over REST and turns
MQTT change notices into live query snapshots.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Protocol
from urllib.parse import quote

from pawmap._constants import SERVER_TIMESTAMP_WIRE
from pawmap._mqtt import BrokerSettings, ChangeFeedRuntime, ChangeNotice
from pawmap._transport import Transport
from pawmap.config import PawmapConfig
from pawmap.exceptions import PawmapTransportError

_logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Sentinel replaced by the store's commit time on insert."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Final = _ServerTimestamp()


@dataclass(frozen=True)
class StoredDocument:
    """A document as returned by the store: opaque id plus untyped fields."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[list[StoredDocument]], None]
ErrorCallback = Callable[[BaseException], None]


class LiveQuery(Protocol):
    """Handle of a running live query."""

    def close(self) -> None:
        ...


class DocumentStore(Protocol):
    """Timestamp-ordered document collections with live-query support."""

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        ...

    async def query(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        ...

    def watch(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> LiveQuery:
        ...


def encode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Replace :data:`SERVER_TIMESTAMP` values with the wire marker."""
    return {key: dict(SERVER_TIMESTAMP_WIRE) if value is SERVER_TIMESTAMP else value for key, value in fields.items()}


def _parse_documents(collection: str, body: Any) -> list[StoredDocument]:
    if not isinstance(body, dict) or not isinstance(body.get("documents"), list):
        raise PawmapTransportError(
            f"Query on {collection} returned no 'documents' list",
            endpoint=collection,
        )
    documents: list[StoredDocument] = []
    for item in body["documents"]:
        if not isinstance(item, dict):
            _logger.warning("Skipping non-object document in %s", collection)
            continue
        doc_id = item.get("id")
        fields = item.get("fields")
        documents.append(
            StoredDocument(
                id=str(doc_id) if doc_id is not None else "",
                fields=dict(fields) if isinstance(fields, dict) else {},
            )
        )
    return documents


class _HttpLiveQuery:
    """Live query driven by change notices.

    A single consumer task owns the broker runtime: it starts it in the
    default executor, re-runs the query whenever a notice arrives and stops
    the runtime in the executor on the way out. Notices received while a
    query is in flight are coalesced into one follow-up query, so snapshots
    are produced strictly one at a time.
    """

    def __init__(
        self,
        store: HttpDocumentStore,
        collection: str,
        *,
        order_by: str,
        descending: bool,
        limit: int | None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._store = store
        self._collection = collection
        self._order_by = order_by
        self._descending = descending
        self._limit = limit
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._closed = False
        self._dirty = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def start(self, runtime: ChangeFeedRuntime, broker: BrokerSettings, topic: str) -> None:
        # Initial snapshot without waiting for a notice.
        self._dirty.set()
        self._task = asyncio.get_running_loop().create_task(self._run(runtime, broker, topic))

    def notify(self, _notice: ChangeNotice | None = None) -> None:
        if not self._closed:
            self._dirty.set()

    def fail(self, error: BaseException) -> None:
        if self._closed:
            return
        self.close()
        self._on_error(error)

    def close(self) -> None:
        """Stop delivery now; the runtime is stopped by the consumer task."""
        if self._closed:
            return
        self._closed = True
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def _run(self, runtime: ChangeFeedRuntime, broker: BrokerSettings, topic: str) -> None:
        loop = asyncio.get_running_loop()
        starting = loop.run_in_executor(None, runtime.start, broker, topic)
        try:
            try:
                await asyncio.shield(starting)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                _logger.debug("Change feed for %s failed to start", self._collection, exc_info=True)
                self.fail(exc)
                return
            await self._consume()
        finally:
            await self._stop_runtime(loop, runtime, starting)

    async def _consume(self) -> None:
        while not self._closed:
            await self._dirty.wait()
            self._dirty.clear()
            try:
                documents = await self._store.query(
                    self._collection,
                    order_by=self._order_by,
                    descending=self._descending,
                    limit=self._limit,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                _logger.debug("Live query on %s failed", self._collection, exc_info=True)
                self.fail(exc)
                return
            if self._closed:
                return
            try:
                self._on_snapshot(documents)
            except Exception:
                _logger.exception("Snapshot callback for %s raised", self._collection)

    async def _stop_runtime(
        self,
        loop: asyncio.AbstractEventLoop,
        runtime: ChangeFeedRuntime,
        starting: asyncio.Future[None],
    ) -> None:
        # A cancelled task can leave start() still running in the executor.
        try:
            await starting
        except Exception:
            _logger.debug("Change feed start for %s did not complete", self._collection, exc_info=True)
        try:
            await loop.run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("Change feed stop for %s failed", self._collection, exc_info=True)


def _current_task() -> asyncio.Task[Any] | None:
    with contextlib.suppress(RuntimeError):
        return asyncio.current_task()
    return None


class HttpDocumentStore:
    """Document store client speaking the REST API plus MQTT change notices."""

    def __init__(
        self,
        config: PawmapConfig,
        transport: Transport,
        *,
        runtime_factory: Callable[..., ChangeFeedRuntime] = ChangeFeedRuntime,
    ) -> None:
        self._config = config
        self._transport = transport
        self._runtime_factory = runtime_factory

    def _documents_url(self, collection: str) -> str:
        return f"{self._config.store_url.rstrip('/')}/collections/{quote(collection, safe='')}/documents"

    def _headers(self) -> dict[str, str]:
        if self._config.store_api_key:
            return {"authorization": f"Bearer {self._config.store_api_key}"}
        return {}

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Insert a document and return its store-assigned id."""
        body = await self._transport.request_json(
            "POST",
            self._documents_url(collection),
            json_body={"fields": encode_fields(fields)},
            headers=self._headers(),
        )
        doc_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(doc_id, str) or not doc_id:
            raise PawmapTransportError(
                f"Insert into {collection} returned no document id",
                endpoint=collection,
            )
        _logger.debug("Inserted document %s into %s", doc_id, collection)
        return doc_id

    async def query(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        """Run a one-shot ordered query."""
        params: dict[str, Any] = {
            "orderBy": order_by,
            "direction": "desc" if descending else "asc",
        }
        if limit is not None:
            params["limit"] = limit
        body = await self._transport.request_json(
            "GET",
            self._documents_url(collection),
            params=params,
            headers=self._headers(),
        )
        return _parse_documents(collection, body)

    def watch(
        self,
        collection: str,
        *,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> LiveQuery:
        """Start a live query; must be called from a running event loop."""
        broker = BrokerSettings.from_config(self._config)
        live = _HttpLiveQuery(
            self,
            collection,
            order_by=order_by,
            descending=descending,
            limit=limit,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        runtime = self._runtime_factory(
            loop=asyncio.get_running_loop(),
            on_notice=live.notify,
            on_error=live.fail,
            logger=_logger,
        )
        topic = f"{self._config.change_topic_prefix.rstrip('/')}/{collection}"
        live.start(runtime, broker, topic)
        return live
