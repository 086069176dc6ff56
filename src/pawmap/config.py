"""Client configuration for pawmap."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pawmap.exceptions import PawmapConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class SearchArea:
    """Centre and radius used for external nearby searches.

    The map viewport only filters results locally; the provider is always
    queried around this fixed area.
    """

    lat: float = 47.6062
    lng: float = -122.3321
    radius_m: int = 20000


@dataclasses.dataclass(frozen=True)
class PawmapConfig:
    """Client configuration.

    Parameters
    ----------
    store_url : str
        Base URL of the document store REST API.
    store_api_key : str or None
        Bearer token sent to the document store.
    mqtt_host : str or None
        Broker publishing collection change notices. Required for live
        feed subscriptions.
    mqtt_port : int
        Broker port.
    mqtt_username : str or None
        Broker username.
    mqtt_password : str or None
        Broker password.
    mqtt_tls : bool
        Connect to the broker over TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    change_topic_prefix : str
        Topic prefix; notices for a collection arrive on
        ``{change_topic_prefix}/{collection}``.
    messages_collection : str
        Collection holding chat messages.
    places_collection : str
        Collection holding user-submitted places.
    max_messages : int
        Default size of the live feed window.
    place_fetch_limit : int
        Maximum number of user-submitted places fetched per load.
    places_api_key : str or None
        API key of the external place search provider. Without a key the
        external source contributes no places.
    places_api_url : str
        Base URL of the external place search provider.
    search_area : SearchArea
        Area queried on the external provider.
    search_result_limit : int
        Maximum number of external results kept per search.
    photo_max_width : int
        Width requested when resolving photo references.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    """

    store_url: str = "http://localhost:8080/v1"
    store_api_key: str | None = None
    mqtt_host: str | None = None
    mqtt_port: int = 8883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = True
    mqtt_keepalive: int = 60
    change_topic_prefix: str = "pawmap/changes"
    messages_collection: str = "chat_messages"
    places_collection: str = "places"
    max_messages: int = 100
    place_fetch_limit: int = 80
    places_api_key: str | None = None
    places_api_url: str = "https://maps.googleapis.com/maps/api/place"
    search_area: SearchArea = dataclasses.field(default_factory=SearchArea)
    search_result_limit: int = 25
    photo_max_width: int = 800
    request_timeout: float = 15.0

    def __post_init__(self) -> None:
        if self.max_messages <= 0:
            raise PawmapConfigError(f"max_messages must be positive, got {self.max_messages}")
        if self.place_fetch_limit <= 0:
            raise PawmapConfigError(f"place_fetch_limit must be positive, got {self.place_fetch_limit}")
        if not self.store_url:
            raise PawmapConfigError("store_url must be set")

    @classmethod
    def from_env(cls, **overrides: Any) -> PawmapConfig:
        """Create configuration from environment variables.

        Reads optional ``PAWMAP_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        PawmapConfig
            Populated configuration.
        """
        env = os.environ

        area_kwargs: dict[str, Any] = {}
        for env_key, field_name, caster in (
            ("PAWMAP_SEARCH_LAT", "lat", float),
            ("PAWMAP_SEARCH_LNG", "lng", float),
            ("PAWMAP_SEARCH_RADIUS_M", "radius_m", int),
        ):
            val = env.get(env_key)
            if val is not None:
                area_kwargs[field_name] = caster(val)

        area_overrides = overrides.pop("search_area", None)
        if isinstance(area_overrides, dict):
            area_kwargs.update(area_overrides)
        elif isinstance(area_overrides, SearchArea):
            area_kwargs = dataclasses.asdict(area_overrides)

        config_kwargs: dict[str, Any] = {"search_area": SearchArea(**area_kwargs)}

        _ENV_CONFIG_MAP = {
            "PAWMAP_STORE_URL": "store_url",
            "PAWMAP_STORE_API_KEY": "store_api_key",
            "PAWMAP_MQTT_HOST": "mqtt_host",
            "PAWMAP_MQTT_USERNAME": "mqtt_username",
            "PAWMAP_MQTT_PASSWORD": "mqtt_password",
            "PAWMAP_CHANGE_TOPIC_PREFIX": "change_topic_prefix",
            "PAWMAP_MESSAGES_COLLECTION": "messages_collection",
            "PAWMAP_PLACES_COLLECTION": "places_collection",
            "PAWMAP_PLACES_API_KEY": "places_api_key",
            "PAWMAP_PLACES_API_URL": "places_api_url",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_INT_MAP = {
            "PAWMAP_MQTT_PORT": "mqtt_port",
            "PAWMAP_MQTT_KEEPALIVE": "mqtt_keepalive",
            "PAWMAP_MAX_MESSAGES": "max_messages",
            "PAWMAP_PLACE_FETCH_LIMIT": "place_fetch_limit",
            "PAWMAP_SEARCH_RESULT_LIMIT": "search_result_limit",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        timeout_env = env.get("PAWMAP_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("PAWMAP_MQTT_TLS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
