"""High-level async client wiring the store, search adapter and engines."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pawmap._api.search import PlaceSearch
from pawmap._transport import HttpTransport, Transport
from pawmap.config import PawmapConfig
from pawmap.exceptions import PawmapError
from pawmap.feed import LiveFeed
from pawmap.identity import IdentityProvider, ImageUploader
from pawmap.places import PlaceAggregator, ViewCallback
from pawmap.store import DocumentStore, HttpDocumentStore

_logger = logging.getLogger(__name__)


class PawmapClient:
    """Async entry point for the community feed and place map.

    Usage::

        async with PawmapClient(config, identity) as client:
            unsubscribe = client.feed.subscribe(render_messages)
            await client.places.load()
            await client.feed.send("anyone at the park?")

    Every adapter receives its collaborators explicitly; pass ``store`` or
    ``transport`` to substitute test doubles or share connections.
    """

    def __init__(
        self,
        config: PawmapConfig,
        identity: IdentityProvider,
        *,
        uploader: ImageUploader | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: DocumentStore | None = None,
        on_places_change: ViewCallback | None = None,
    ) -> None:
        self._config = config
        self._identity = identity
        self._uploader = uploader
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._store = store
        self._on_places_change = on_places_change
        self._feed: LiveFeed | None = None
        self._places: PlaceAggregator | None = None
        self._search: PlaceSearch | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PawmapClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        if self._store is None:
            self._store = HttpDocumentStore(self._config, self._transport)

        self._search = PlaceSearch(self._config, self._transport)
        self._feed = LiveFeed(
            self._store,
            self._identity,
            collection=self._config.messages_collection,
            max_messages=self._config.max_messages,
        )
        self._places = PlaceAggregator(
            self._store,
            self._search,
            self._identity,
            uploader=self._uploader,
            collection=self._config.places_collection,
            fetch_limit=self._config.place_fetch_limit,
            on_change=self._on_places_change,
        )
        _logger.debug("Client started store=%s search_enabled=%s", type(self._store).__name__, self._search.enabled)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._feed is not None:
            self._feed.unsubscribe()
        self._feed = None
        self._places = None
        self._search = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Engines
    # ------------------------------------------------------------------

    @property
    def feed(self) -> LiveFeed:
        if self._feed is None:
            raise PawmapError("Client not initialized. Use 'async with PawmapClient(...) as client:'")
        return self._feed

    @property
    def places(self) -> PlaceAggregator:
        if self._places is None:
            raise PawmapError("Client not initialized. Use 'async with PawmapClient(...) as client:'")
        return self._places

    @property
    def search(self) -> PlaceSearch:
        if self._search is None:
            raise PawmapError("Client not initialized. Use 'async with PawmapClient(...) as client:'")
        return self._search
