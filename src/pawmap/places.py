"""Place aggregation engine.

Holds the two canonical source lists (user-submitted and external search),
the active category filter and viewport, and recomputes the aggregated view
whenever any of them changes.

User-submitted data is authoritative: failing to fetch it fails the load.
External data is best-effort enrichment: failures are logged and leave the
external list empty for that cycle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from pawmap._api import places as _places_api
from pawmap._api.search import PlaceSearch
from pawmap.exceptions import PlacesLoadFailedError, PlaceSubmitFailedError
from pawmap.identity import IdentityProvider, ImageUploader
from pawmap.models.place import CategoryFilter, Place, PlaceCategory, PlaceDraft, PlaceSource, ViewportBounds
from pawmap.store import DocumentStore

_logger = logging.getLogger(__name__)

ViewCallback = Callable[[list[Place]], None]


def recompute_view(
    user_places: Sequence[Place],
    external_places: Sequence[Place],
    category: CategoryFilter | str = CategoryFilter.ALL,
    viewport: ViewportBounds | None = None,
) -> list[Place]:
    """Merge both sources and apply the category and viewport filters.

    Places are concatenated user-first without de-duplication; the same
    physical place reported by both sources appears twice. Relative order is
    preserved. Without a viewport every place passes the location filter.
    """
    active = CategoryFilter(category)
    combined = [*user_places, *external_places]
    return [
        place
        for place in combined
        if active.matches(place.category) and (viewport is None or viewport.contains(place.lat, place.lng))
    ]


class PlaceAggregator:
    """Merges user-submitted and external places into one viewport-scoped view."""

    def __init__(
        self,
        store: DocumentStore,
        search: PlaceSearch | None,
        identity: IdentityProvider,
        *,
        uploader: ImageUploader | None = None,
        collection: str = "places",
        fetch_limit: int = 80,
        default_search_category: PlaceCategory = PlaceCategory.PARK,
        on_change: ViewCallback | None = None,
    ) -> None:
        self._store = store
        self._search = search
        self._identity = identity
        self._uploader = uploader
        self._collection = collection
        self._fetch_limit = fetch_limit
        self._default_search_category = default_search_category
        self.on_change = on_change
        self._user_places: list[Place] = []
        self._external_places: list[Place] = []
        self._category = CategoryFilter.ALL
        self._viewport: ViewportBounds | None = None
        self._view: list[Place] = []
        self._load_generation = 0
        self._external_generation = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def user_places(self) -> list[Place]:
        return list(self._user_places)

    @property
    def external_places(self) -> list[Place]:
        return list(self._external_places)

    @property
    def category(self) -> CategoryFilter:
        return self._category

    @property
    def viewport(self) -> ViewportBounds | None:
        return self._viewport

    @property
    def view(self) -> list[Place]:
        """The aggregated view as of the last recompute."""
        return list(self._view)

    def _publish(self) -> list[Place]:
        self._view = recompute_view(self._user_places, self._external_places, self._category, self._viewport)
        if self.on_change is not None:
            self.on_change(list(self._view))
        return list(self._view)

    def set_viewport(self, viewport: ViewportBounds | None) -> list[Place]:
        """Set (or clear) the visible region and recompute."""
        self._viewport = viewport
        return self._publish()

    async def set_category(self, category: CategoryFilter | str) -> list[Place]:
        """Switch the category filter.

        The view is recomputed right away from the held lists, then the
        external source is re-queried for the new category and the view is
        recomputed again.
        """
        self._category = CategoryFilter(category)
        self._external_generation += 1
        generation = self._external_generation
        self._publish()
        external = await self._fetch_external(self._category)
        if generation != self._external_generation:
            return self.view
        self._external_places = external
        return self._publish()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _fetch_external(self, category: CategoryFilter) -> list[Place]:
        if self._search is None:
            return []
        search_category = category.search_category(self._default_search_category)
        try:
            return await self._search.search(search_category)
        except Exception:
            _logger.warning("External place search failed for category=%s", search_category, exc_info=True)
            return []

    async def load(self, category: CategoryFilter | str | None = None) -> list[Place]:
        """Fetch both sources concurrently and recompute the view.

        Raises
        ------
        PlacesLoadFailedError
            The user-submitted fetch failed. The previously held lists are
            left untouched.
        """
        if category is not None:
            self._category = CategoryFilter(category)
            # External fetches started for the previous category are stale.
            self._external_generation += 1
        self._load_generation += 1
        generation = self._load_generation
        external_generation = self._external_generation

        user_result, external_places = await asyncio.gather(
            _places_api.fetch_user_places(self._store, self._collection, self._fetch_limit),
            self._fetch_external(self._category),
            return_exceptions=True,
        )
        if isinstance(external_places, BaseException):
            # _fetch_external only lets cancellation through.
            raise external_places
        if isinstance(user_result, BaseException):
            if not isinstance(user_result, Exception):
                raise user_result
            _logger.debug("User place fetch failed", exc_info=user_result)
            raise PlacesLoadFailedError(f"Could not load places: {user_result}", cause=user_result) from user_result

        if generation != self._load_generation:
            _logger.debug("Discarding results of superseded load %d", generation)
            return self.view

        self._user_places = user_result
        if external_generation == self._external_generation:
            self._external_places = external_places
        return self._publish()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_place(self, draft: PlaceDraft) -> str:
        """Validate and store a new user-submitted place, then reload.

        Raises
        ------
        InvalidPlaceDraftError
            A required field is missing or invalid; nothing is uploaded or
            written.
        PlaceSubmitFailedError
            The image upload or the store write failed.
        """
        fields = draft.to_fields()
        actor = self._identity.current_actor()

        photo_url: str | None = None
        if draft.image is not None:
            if self._uploader is None:
                raise PlaceSubmitFailedError("An image was attached but no image uploader is configured")
            try:
                photo_url = await self._uploader.upload(draft.image)
            except Exception as exc:
                raise PlaceSubmitFailedError(f"Could not upload place image: {exc}", cause=exc) from exc

        try:
            doc_id = await _places_api.insert_place(
                self._store,
                self._collection,
                fields,
                author_id=actor.id if actor is not None else None,
                photo_url=photo_url,
            )
        except Exception as exc:
            raise PlaceSubmitFailedError(f"Could not save place: {exc}", cause=exc) from exc

        try:
            await self.load()
        except PlacesLoadFailedError:
            _logger.warning("Reload after submitting place %s failed", doc_id, exc_info=True)
        return doc_id

    async def resolve_photos(self, place: Place) -> list[str]:
        """Resolve the extra photo references of an external place.

        References that fail to resolve are skipped.
        """
        if place.source is not PlaceSource.EXTERNAL_SEARCH or not place.photo_refs or self._search is None:
            return []
        results = await asyncio.gather(
            *(self._search.resolve_photo(ref) for ref in place.photo_refs),
            return_exceptions=True,
        )
        urls: list[str] = []
        for ref, result in zip(place.photo_refs, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                _logger.debug("Photo reference %s failed to resolve", ref, exc_info=result)
                continue
            urls.append(result)
        return urls
