"""External place search adapter (Google Places web service).

Endpoints:
  - /nearbysearch/json (category-scoped keyword search around a fixed area)
  - /photo (photo reference -> redirect to a displayable image URL)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlencode

from pawmap._constants import DEFAULT_SEARCH_KEYWORD, MAX_EXTRA_PHOTO_REFS, SEARCH_KEYWORDS
from pawmap._transport import Transport
from pawmap.config import PawmapConfig
from pawmap.exceptions import PawmapTransportError, PlaceSearchError
from pawmap.models._base import safe_float, safe_str
from pawmap.models.place import Place, PlaceCategory, PlaceSource

_logger = logging.getLogger(__name__)

_EMPTY_STATUSES = frozenset({"ZERO_RESULTS"})


def _photo_refs(raw: dict[str, Any]) -> list[str]:
    photos = raw.get("photos")
    if not isinstance(photos, list):
        return []
    refs: list[str] = []
    for photo in photos:
        ref = photo.get("photo_reference") if isinstance(photo, dict) else None
        if isinstance(ref, str) and ref:
            refs.append(ref)
    return refs


class PlaceSearch:
    """Category-scoped nearby search with photo reference resolution."""

    def __init__(self, config: PawmapConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    @property
    def enabled(self) -> bool:
        """Whether an API key is configured."""
        return bool(self._config.places_api_key)

    def _url(self, path: str) -> str:
        return f"{self._config.places_api_url.rstrip('/')}/{path}"

    async def search(self, category: PlaceCategory) -> list[Place]:
        """Search places of *category* around the configured area.

        Returns an empty list when no API key is configured.

        Raises
        ------
        PlaceSearchError
            On transport failures or a status other than ``OK`` /
            ``ZERO_RESULTS``.
        """
        api_key = self._config.places_api_key
        if not api_key:
            _logger.debug("No places API key configured; skipping external search")
            return []

        area = self._config.search_area
        params = {
            "keyword": SEARCH_KEYWORDS.get(category.value, DEFAULT_SEARCH_KEYWORD),
            "location": f"{area.lat},{area.lng}",
            "radius": area.radius_m,
            "key": api_key,
        }
        try:
            body = await self._transport.request_json("GET", self._url("nearbysearch/json"), params=params)
        except PawmapTransportError as exc:
            raise PlaceSearchError(f"Nearby search failed: {exc}") from exc

        if not isinstance(body, dict):
            raise PlaceSearchError("Nearby search returned a non-object body")
        status = str(body.get("status", ""))
        if status in _EMPTY_STATUSES:
            return []
        if status != "OK":
            raise PlaceSearchError(
                f"Nearby search status {status}: {body.get('error_message', '')}",
                status=status,
            )

        raw_results = body.get("results")
        results = [r for r in raw_results if isinstance(r, dict)] if isinstance(raw_results, list) else []
        places = await asyncio.gather(
            *(self._to_place(raw, category) for raw in results[: self._config.search_result_limit])
        )
        return [place for place in places if place is not None]

    async def _to_place(self, raw: dict[str, Any], category: PlaceCategory) -> Place | None:
        geometry = raw.get("geometry")
        location = geometry.get("location") if isinstance(geometry, dict) else None
        lat = safe_float(location.get("lat")) if isinstance(location, dict) else None
        lng = safe_float(location.get("lng")) if isinstance(location, dict) else None
        place_id = safe_str(raw.get("place_id"))
        name = safe_str(raw.get("name"))
        if lat is None or lng is None or place_id is None or name is None:
            _logger.debug("Skipping search result without id/name/location: %s", raw.get("place_id"))
            return None

        refs = _photo_refs(raw)
        photo_url: str | None = None
        if refs:
            try:
                photo_url = await self.resolve_photo(refs[0])
            except PlaceSearchError:
                _logger.debug("Preview photo resolution failed for %s", place_id, exc_info=True)

        return Place(
            id=place_id,
            name=name,
            category=category,
            address=safe_str(raw.get("vicinity")),
            lat=lat,
            lng=lng,
            photo_url=photo_url,
            source=PlaceSource.EXTERNAL_SEARCH,
            photo_refs=tuple(refs[1 : 1 + MAX_EXTRA_PHOTO_REFS]),
        )

    async def resolve_photo(self, photo_ref: str) -> str:
        """Resolve a photo reference into a displayable image URL."""
        api_key = self._config.places_api_key
        if not api_key:
            raise PlaceSearchError("Cannot resolve photos without a places API key")
        url = self._url("photo")
        params = {
            "maxwidth": self._config.photo_max_width,
            "photoreference": photo_ref,
            "key": api_key,
        }
        try:
            location = await self._transport.resolve_redirect(url, params=params)
        except PawmapTransportError as exc:
            raise PlaceSearchError(f"Photo resolution failed: {exc}") from exc
        if location:
            return location
        return f"{url}?{urlencode(params)}"
