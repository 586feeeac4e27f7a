"""MQTT notifications for station transitions (Home Assistant device trackers)."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set, cast

import paho.mqtt.client as mqtt

from wifi_exporter.errors import PublishError
from wifi_exporter.models import Update

logger = logging.getLogger(__name__)

CLIENT_ID = "wifi-exporter"
KEEPALIVE = 5
PUBLISH_TIMEOUT = 10.0
PAYLOAD_CONNECTED = "connected"
PAYLOAD_DISCONNECTED = "disconnected"


def sanitize_device_id(mac: str) -> str:
    """Make a station id usable as a single topic segment."""
    return mac.replace(":", "_")


def config_topic(device_id: str) -> str:
    return f"homeassistant/device_tracker/wifi-{device_id}/config"


def state_topic(device_id: str) -> str:
    return f"wifi-exporter/{device_id}/state"


def discovery_payload(device_id: str) -> Dict[str, Any]:
    """Home Assistant MQTT discovery document for one station."""
    name = f"Wifi device {device_id}"
    return {
        "state_topic": state_topic(device_id),
        "device": {
            "name": name,
            "manufacturer": "Icewind",
            "model": "Wifi Tracker",
            "identifiers": device_id,
        },
        "name": name,
        "payload_home": PAYLOAD_CONNECTED,
        "payload_not_home": PAYLOAD_DISCONNECTED,
        "unique_id": f"wifi-{device_id}-connected",
        "icon": "mdi:wifi",
        "source_type": "router",
    }


class MqttNotifier:
    """Publishes discovery and state messages for station transitions.

    Delivery is best effort: every publish is a single attempt and failures
    are logged, never raised to the caller. The paho network loop runs in its
    own thread and reconnects on its own, independent of the poll loop.
    """

    def __init__(self, client: Any, *, publish_timeout: float = PUBLISH_TIMEOUT) -> None:
        self._client = client
        self.publish_timeout = publish_timeout
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def start(
        cls,
        hostname: str,
        port: int,
        username: str,
        password: str,
        *,
        publish_timeout: float = PUBLISH_TIMEOUT,
    ) -> "MqttNotifier":
        """Create a client, start its network loop and connect in the background."""
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=CLIENT_ID,
        )
        client.enable_logger(logger)
        client.username_pw_set(username, password)

        def on_connect(_c: mqtt.Client, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
            if reason_code.is_failure:
                logger.warning("MQTT connect failed: %s", reason_code)
                return
            logger.info("MQTT connected to %s:%s", hostname, port)

        def on_disconnect(
            _c: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect
        client.connect_async(hostname, port, keepalive=KEEPALIVE)
        client.loop_start()
        logger.debug("MQTT network loop started for %s:%s", hostname, port)
        return cls(client, publish_timeout=publish_timeout)

    def close(self) -> None:
        try:
            self._client.disconnect()
        finally:
            self._client.loop_stop()

    async def dispatch(self, mac: str, update: Update) -> None:
        """Publish the messages for one transition. Never raises PublishError."""
        device_id = sanitize_device_id(mac)
        try:
            if update is Update.NEW:
                await self._publish(config_topic(device_id), json.dumps(discovery_payload(device_id)))
                self._spawn(self._publish(state_topic(device_id), PAYLOAD_CONNECTED))
            elif update is Update.CONNECTED:
                await self._publish(state_topic(device_id), PAYLOAD_CONNECTED)
            else:
                await self._publish(state_topic(device_id), PAYLOAD_DISCONNECTED)
        except PublishError as exc:
            logger.error("Error while sending mqtt update for %s (%s): %s", mac, update, exc)

    async def drain(self) -> None:
        """Wait for detached publishes; used by tests and orderly shutdown."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _publish(self, topic: str, payload: str) -> None:
        try:
            info = self._client.publish(topic, payload, qos=1, retain=True)
            await asyncio.to_thread(info.wait_for_publish, self.publish_timeout)
        except (RuntimeError, ValueError, OSError) as exc:
            raise PublishError(f"publish to {topic} failed: {exc}", topic=topic) from exc
        if not info.is_published():
            raise PublishError(f"publish to {topic} not acknowledged within {self.publish_timeout}s", topic=topic)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc: Optional[BaseException] = task.exception()
        if exc is not None:
            # detached state publish is best effort
            logger.debug("Detached mqtt publish failed: %s", exc)


__all__ = [
    "MqttNotifier",
    "sanitize_device_id",
    "config_topic",
    "state_topic",
    "discovery_payload",
]
