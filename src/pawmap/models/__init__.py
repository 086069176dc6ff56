"""Data models for messages and places."""

from pawmap.models._base import PawmapBaseModel, PawmapStrEnum, StoreTimestamp, parse_store_timestamp
from pawmap.models.message import Message
from pawmap.models.place import CategoryFilter, Place, PlaceCategory, PlaceDraft, PlaceSource, ViewportBounds

__all__ = [
    "CategoryFilter",
    "Message",
    "PawmapBaseModel",
    "PawmapStrEnum",
    "Place",
    "PlaceCategory",
    "PlaceDraft",
    "PlaceSource",
    "StoreTimestamp",
    "ViewportBounds",
    "parse_store_timestamp",
]
