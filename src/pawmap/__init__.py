"""pawmap - Async live feed and place aggregation for community map apps."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pawmap")
except PackageNotFoundError:
    __version__ = "0+local"
from pawmap.client import PawmapClient
from pawmap.config import PawmapConfig, SearchArea
from pawmap.exceptions import (
    EmptyMessageError,
    FeedDisconnectedError,
    InvalidPlaceDraftError,
    MalformedRecordError,
    PawmapConfigError,
    PawmapError,
    PawmapTransportError,
    PawmapValidationError,
    PlaceSearchError,
    PlacesLoadFailedError,
    PlaceSubmitFailedError,
    RemoteOperationError,
    SendFailedError,
    UnauthenticatedError,
)
from pawmap.feed import FeedSubscription, LiveFeed
from pawmap.identity import Actor, IdentityProvider, ImageUploader
from pawmap.models import CategoryFilter, Message, Place, PlaceCategory, PlaceDraft, PlaceSource, ViewportBounds
from pawmap.places import PlaceAggregator, recompute_view
from pawmap.store import SERVER_TIMESTAMP, DocumentStore, HttpDocumentStore, StoredDocument

__all__ = [
    "__version__",
    "SERVER_TIMESTAMP",
    "Actor",
    "CategoryFilter",
    "DocumentStore",
    "EmptyMessageError",
    "FeedDisconnectedError",
    "FeedSubscription",
    "HttpDocumentStore",
    "IdentityProvider",
    "ImageUploader",
    "InvalidPlaceDraftError",
    "LiveFeed",
    "MalformedRecordError",
    "Message",
    "PawmapClient",
    "PawmapConfig",
    "PawmapConfigError",
    "PawmapError",
    "PawmapTransportError",
    "PawmapValidationError",
    "Place",
    "PlaceAggregator",
    "PlaceCategory",
    "PlaceDraft",
    "PlaceSearchError",
    "PlaceSource",
    "PlacesLoadFailedError",
    "PlaceSubmitFailedError",
    "RemoteOperationError",
    "SearchArea",
    "SendFailedError",
    "StoredDocument",
    "UnauthenticatedError",
    "ViewportBounds",
    "recompute_view",
]
