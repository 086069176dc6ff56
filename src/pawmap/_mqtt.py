"""MQTT runtime delivering collection change notices onto an asyncio loop."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pawmap.config import PawmapConfig
from pawmap.exceptions import PawmapConfigError, PawmapError


@dataclass(frozen=True)
class BrokerSettings:
    """Broker connection details for change notices."""

    host: str
    port: int
    client_id: str
    username: str | None = None
    password: str | None = None
    tls: bool = True
    keepalive: int = 60

    @classmethod
    def from_config(cls, config: PawmapConfig) -> BrokerSettings:
        if not config.mqtt_host:
            raise PawmapConfigError("mqtt_host must be set for live subscriptions")
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            client_id=f"pawmap_{secrets.token_hex(8)}",
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            keepalive=config.mqtt_keepalive,
        )


@dataclass(frozen=True)
class ChangeNotice:
    """A parsed change notice for one collection."""

    topic: str
    payload: dict[str, Any]


def parse_change_payload(payload: bytes) -> dict[str, Any]:
    """Parse a notice payload; empty or non-object payloads become ``{}``.

    The payload content is informational only; any message on the topic
    means the collection changed.
    """
    text = payload.decode("utf-8", errors="replace").strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class ChangeFeedRuntime:
    """Threaded paho-mqtt runtime that emits change notices onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_notice: Callable[[ChangeNotice], None],
        on_error: Callable[[BaseException], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_notice = on_notice
        self._on_error = on_error
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self, broker: BrokerSettings, topic: str) -> None:
        """Connect and subscribe to *topic*."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            broker.host,
            broker.port,
            topic,
            broker.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=broker.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if broker.username:
            client.username_pw_set(broker.username, broker.password)
        if broker.tls:
            client.tls_set()

        self._topic = topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                self._fail(PawmapError(f"MQTT connect failed: {reason_code}"))
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            if self._topic:
                c.subscribe(self._topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            notice = ChangeNotice(topic=msg.topic, payload=parse_change_payload(msg.payload))
            self._logger.debug("MQTT change notice topic=%s", msg.topic)
            self._loop.call_soon_threadsafe(self._on_notice, notice)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)
                self._fail(PawmapError(f"MQTT disconnected: {reason_code}"))

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(broker.host, broker.port, keepalive=broker.keepalive)
        except OSError as exc:
            raise PawmapError(f"MQTT connect to {broker.host}:{broker.port} failed: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def _fail(self, error: BaseException) -> None:
        # Runs on the network thread; paho would otherwise reconnect silently.
        self._running = False
        self._loop.call_soon_threadsafe(self._on_error, error)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
