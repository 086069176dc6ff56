from __future__ import annotations

import pytest

from pawmap.config import PawmapConfig, SearchArea
from pawmap.exceptions import PawmapConfigError


def test_defaults() -> None:
    config = PawmapConfig()

    assert config.max_messages == 100
    assert config.place_fetch_limit == 80
    assert config.search_area == SearchArea(lat=47.6062, lng=-122.3321, radius_m=20000)
    assert config.search_result_limit == 25
    assert config.photo_max_width == 800
    assert config.places_api_key is None


@pytest.mark.parametrize(
    "kwargs",
    [{"max_messages": 0}, {"place_fetch_limit": -1}, {"store_url": ""}],
)
def test_invalid_values_raise(kwargs: dict[str, object]) -> None:
    with pytest.raises(PawmapConfigError):
        PawmapConfig(**kwargs)  # type: ignore[arg-type]


def test_from_env_reads_pawmap_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAWMAP_STORE_URL", "https://store.example.com/v1")
    monkeypatch.setenv("PAWMAP_MQTT_HOST", "mqtt.example.com")
    monkeypatch.setenv("PAWMAP_MQTT_PORT", "1883")
    monkeypatch.setenv("PAWMAP_MQTT_TLS", "off")
    monkeypatch.setenv("PAWMAP_MAX_MESSAGES", "50")
    monkeypatch.setenv("PAWMAP_PLACES_API_KEY", "k")
    monkeypatch.setenv("PAWMAP_SEARCH_LAT", "40.7")
    monkeypatch.setenv("PAWMAP_SEARCH_RADIUS_M", "5000")
    monkeypatch.setenv("PAWMAP_REQUEST_TIMEOUT", "3.5")

    config = PawmapConfig.from_env()

    assert config.store_url == "https://store.example.com/v1"
    assert config.mqtt_host == "mqtt.example.com"
    assert config.mqtt_port == 1883
    assert config.mqtt_tls is False
    assert config.max_messages == 50
    assert config.places_api_key == "k"
    assert config.search_area == SearchArea(lat=40.7, lng=-122.3321, radius_m=5000)
    assert config.request_timeout == 3.5


def test_from_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAWMAP_MAX_MESSAGES", "50")
    monkeypatch.setenv("PAWMAP_MQTT_TLS", "false")
    monkeypatch.setenv("PAWMAP_SEARCH_LNG", "-70.0")

    config = PawmapConfig.from_env(max_messages=10, mqtt_tls=True, search_area={"radius_m": 100})

    assert config.max_messages == 10
    assert config.mqtt_tls is True
    assert config.search_area == SearchArea(lat=47.6062, lng=-70.0, radius_m=100)


def test_from_env_rejects_invalid_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAWMAP_PLACE_FETCH_LIMIT", "0")

    with pytest.raises(PawmapConfigError):
        PawmapConfig.from_env()
