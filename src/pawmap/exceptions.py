"""Custom exception hierarchy for pawmap."""

from __future__ import annotations


class PawmapError(Exception):
    """Base exception for all pawmap errors."""


class PawmapConfigError(PawmapError):
    """Invalid or missing configuration."""


class UnauthenticatedError(PawmapError):
    """The action requires a signed-in actor and none is present."""


class PawmapValidationError(PawmapError):
    """Local input validation failed; nothing was sent over the network."""


class EmptyMessageError(PawmapValidationError):
    """Message text is empty after trimming whitespace."""


class InvalidPlaceDraftError(PawmapValidationError):
    """A place draft is missing a required field or has an unparseable one."""

    def __init__(self, message: str, *, field: str) -> None:
        self.field = field
        super().__init__(message)


class RemoteOperationError(PawmapError):
    """A remote operation was rejected or the network was unreachable.

    The underlying exception is available both as ``__cause__`` (when raised
    with ``raise ... from exc``) and as :attr:`cause`.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class SendFailedError(RemoteOperationError):
    """Appending a message to the store failed."""


class PlacesLoadFailedError(RemoteOperationError):
    """Fetching user-submitted places failed.

    The aggregation engine keeps its previous place lists when this is raised.
    """


class PlaceSubmitFailedError(RemoteOperationError):
    """Uploading a place image or writing a place document failed."""


class FeedDisconnectedError(RemoteOperationError):
    """The live feed subscription terminated unexpectedly.

    Delivered to the subscriber's ``on_disconnect`` callback; the
    subscription is stopped and must be re-established by the caller.
    """


class MalformedRecordError(PawmapError):
    """A stored document is missing required fields or has invalid values."""

    def __init__(
        self,
        message: str,
        *,
        collection: str = "",
        document_id: str = "",
    ) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(message)


class PawmapTransportError(PawmapError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class PlaceSearchError(PawmapError):
    """The external place search provider failed or returned a non-OK status."""

    def __init__(self, message: str, *, status: str = "") -> None:
        self.status = status
        super().__init__(message)
