"""Place, viewport and place-draft models."""

from __future__ import annotations

import dataclasses
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pawmap.exceptions import InvalidPlaceDraftError
from pawmap.models._base import PawmapBaseModel, PawmapStrEnum, StoreTimestamp, safe_float, safe_str


class PlaceCategory(PawmapStrEnum):
    """Kind of place. Unknown values decode to ``OTHER``."""

    PARK = "park"
    CAFE = "cafe"
    TRAIL = "trail"
    OTHER = "other"


class PlaceSource(StrEnum):
    """Where a place came from."""

    USER_SUBMITTED = "user-submitted"
    EXTERNAL_SEARCH = "external-search"


class CategoryFilter(StrEnum):
    """Category filter applied to the aggregated view."""

    ALL = "all"
    PARK = "park"
    CAFE = "cafe"
    TRAIL = "trail"
    OTHER = "other"

    def matches(self, category: PlaceCategory) -> bool:
        return self is CategoryFilter.ALL or self.value == category.value

    def search_category(self, default: PlaceCategory = PlaceCategory.PARK) -> PlaceCategory:
        """Category sent to the external provider, which takes exactly one."""
        if self is CategoryFilter.ALL:
            return default
        return PlaceCategory(self.value)


class Place(PawmapBaseModel):
    """A point of interest from either source.

    User-submitted places are decoded from the places collection (``type``,
    ``parking``, ``photoUrl``, ``authorId``, ``createdAt``, ``upvotes``);
    external places are built by the search adapter and are only valid for
    the lifetime of one fetch.
    """

    id: str
    name: str
    category: PlaceCategory = Field(
        default=PlaceCategory.OTHER,
        validation_alias=AliasChoices("type", "category"),
    )
    address: str | None = None
    lat: float
    lng: float
    notes: str | None = None
    parking_info: str | None = Field(
        default=None,
        validation_alias=AliasChoices("parking", "parkingInfo", "parking_info"),
    )
    photo_url: str | None = None
    source: PlaceSource = PlaceSource.USER_SUBMITTED
    author_id: str | None = None
    created_at: StoreTimestamp = None
    upvotes: int = 0
    photo_refs: tuple[str, ...] = ()
    """Unresolved photo references, resolved on demand."""

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> PlaceCategory:
        return PlaceCategory(value)

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float:
        parsed = safe_float(value)
        if parsed is None:
            raise ValueError(f"coordinate must be a finite number, got {value!r}")
        return parsed


class ViewportBounds(BaseModel):
    """Visible map region as centre plus spans.

    Defines the inclusive box ``[center - span/2, center + span/2]`` on each
    axis.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    center_lat: float
    center_lng: float
    lat_span: float = Field(ge=0)
    lng_span: float = Field(ge=0)

    @property
    def min_lat(self) -> float:
        return self.center_lat - self.lat_span / 2

    @property
    def max_lat(self) -> float:
        return self.center_lat + self.lat_span / 2

    @property
    def min_lng(self) -> float:
        return self.center_lng - self.lng_span / 2

    @property
    def max_lng(self) -> float:
        return self.center_lng + self.lng_span / 2

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


@dataclasses.dataclass(frozen=True)
class PlaceDraft:
    """User input for a new place, as typed into a form.

    ``lat`` and ``lng`` may be strings; they are parsed by :meth:`to_fields`.
    ``image`` is an opaque local handle passed to the image uploader.
    """

    name: str
    lat: str | float | None
    lng: str | float | None
    category: PlaceCategory = PlaceCategory.PARK
    address: str = ""
    notes: str = ""
    parking_info: str = ""
    image: Any = None

    def to_fields(self) -> dict[str, Any]:
        """Validate the draft and return its document fields.

        Raises
        ------
        InvalidPlaceDraftError
            If ``name`` is blank or a coordinate is missing or not a finite
            number. :attr:`InvalidPlaceDraftError.field` names the field.
        """
        name = (self.name or "").strip()
        if not name:
            raise InvalidPlaceDraftError("Place name is required", field="name")
        coordinates: dict[str, float] = {}
        for field_name in ("lat", "lng"):
            raw = getattr(self, field_name)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                raise InvalidPlaceDraftError(f"{field_name} is required", field=field_name)
            parsed = safe_float(raw)
            if parsed is None:
                raise InvalidPlaceDraftError(f"{field_name} must be a finite number, got {raw!r}", field=field_name)
            coordinates[field_name] = parsed

        return {
            "name": name,
            "type": PlaceCategory(self.category).value,
            "address": safe_str(self.address),
            "notes": safe_str(self.notes),
            "parking": safe_str(self.parking_info),
            "lat": coordinates["lat"],
            "lng": coordinates["lng"],
        }
