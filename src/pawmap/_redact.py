"""Redaction for DEBUG output.

The store is called with a bearer token and the place search provider with
an API key in the query string; photo redirects echo that key back in
``Location`` headers. Everything logged by the transport goes through here.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_MASK = "<redacted>"
_MAX_DEPTH = 12

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "key",
        "apikey",
        "api_key",
        "password",
        "token",
        "accesstoken",
        "authorization",
        "cookie",
    }
)


def _is_sensitive(key: object) -> bool:
    return str(key).lower() in _SENSITIVE_VALUE_KEYS


def redact_url(url: str) -> str:
    """Return *url* with sensitive query parameter values masked."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [(k, _MASK if _is_sensitive(k) else v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    return urlunsplit(parts._replace(query=urlencode(query, safe="<>")))


def _redact_text(text: str, max_string: int) -> str:
    if "://" in text and "?" in text:
        text = redact_url(text)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with secrets masked and long strings cut.

    Mapping values under sensitive keys are replaced wholesale; URL strings
    keep their path but lose sensitive query values. Documents nest shallowly,
    so anything deeper than a dozen levels is elided.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _redact_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, Mapping):
        return {
            str(k): _MASK if _is_sensitive(k) else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    return repr(value)
