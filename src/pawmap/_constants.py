"""Internal constants shared across the library."""

USER_AGENT = "pawmap/1 (+aiohttp)"

#: Wire marker the document store replaces with its commit time.
SERVER_TIMESTAMP_WIRE: dict[str, bool] = {"$serverTimestamp": True}

#: Keyword sent to the nearby search per place category.
SEARCH_KEYWORDS: dict[str, str] = {
    "park": "dog park",
    "cafe": "dog friendly cafe",
    "trail": "dog friendly trail",
}
DEFAULT_SEARCH_KEYWORD = "dog park"

#: Extra photo references kept unresolved per external place.
MAX_EXTRA_PHOTO_REFS = 4
