"""JSON-over-HTTP transport shared by the store and search adapters."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pawmap._constants import USER_AGENT
from pawmap._redact import redact_for_log, redact_url
from pawmap.exceptions import PawmapTransportError

_logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class Transport(Protocol):
    """Structural transport interface used by adapter modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        ...

    async def resolve_redirect(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> str | None:
        ...


class HttpTransport:
    """aiohttp-backed transport returning decoded JSON bodies."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 15.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a request and decode the JSON response body.

        Raises :class:`PawmapTransportError` on network failures, non-2xx
        statuses and bodies that are not JSON.
        """
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        _logger.debug("%s %s params=%s", method, redact_url(url), redact_for_log(params))

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json_body,
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise PawmapTransportError(
                        f"HTTP {resp.status} from {redact_url(url)}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=redact_url(url),
                    )
        except PawmapTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PawmapTransportError(
                f"Request to {redact_url(url)} failed: {exc}",
                endpoint=redact_url(url),
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PawmapTransportError(
                f"Invalid JSON from {redact_url(url)}: {text[:200]}",
                endpoint=redact_url(url),
            ) from exc

    async def resolve_redirect(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> str | None:
        """GET *url* without following redirects and return the ``Location`` target.

        Returns ``None`` when the server answers without a redirect.
        """
        _logger.debug("GET (no redirects) %s params=%s", redact_url(url), redact_for_log(params))
        try:
            async with self._http.get(
                url,
                params=dict(params) if params else None,
                headers={"user-agent": USER_AGENT},
                allow_redirects=False,
                timeout=self._timeout,
            ) as resp:
                if resp.status in _REDIRECT_STATUSES:
                    return resp.headers.get("Location")
                if not 200 <= resp.status < 300:
                    raise PawmapTransportError(
                        f"HTTP {resp.status} from {redact_url(url)}",
                        status_code=resp.status,
                        endpoint=redact_url(url),
                    )
                return None
        except PawmapTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PawmapTransportError(
                f"Request to {redact_url(url)} failed: {exc}",
                endpoint=redact_url(url),
            ) from exc
