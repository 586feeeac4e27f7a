"""Prometheus text rendering for the station registry."""
from __future__ import annotations

from typing import List

from wifi_exporter.models import DeviceStates

CONTENT_TYPE = "text/plain; version=0.0.4"
METRIC_NAME = "wifi_client"


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def render(states: DeviceStates) -> str:
    """Render one ``wifi_client{mac="..."}`` sample per known station.

    The value is ``1`` while the station is associated and ``0`` once it has
    left. Callers must hold the registry lock.
    """
    lines: List[str] = []
    for mac, connected in states.devices.items():
        lines.append(f'{METRIC_NAME}{{mac="{_escape_label(mac)}"}} {int(connected)}\n')
    return "".join(lines)


__all__ = ["render", "CONTENT_TYPE", "METRIC_NAME"]
