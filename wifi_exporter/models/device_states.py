from __future__ import annotations

import contextlib
import enum
import threading
from typing import Dict, Iterable, Iterator, List, Tuple


class Update(enum.Enum):
    """Kind of change observed for one station between two polls."""

    NEW = "discovered"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

    def __str__(self) -> str:
        return self.value


Transition = Tuple[str, Update]


class DeviceStates:
    """Registry of every station seen so far and whether it is associated.

    Entries are never removed; a station that leaves is only flagged as
    disconnected, so the registry grows monotonically over the process life.
    """

    def __init__(self) -> None:
        self.devices: Dict[str, bool] = {}

    def __len__(self) -> int:
        return len(self.devices)

    def __contains__(self, mac: object) -> bool:
        return mac in self.devices

    def is_connected(self, mac: str) -> bool:
        return self.devices.get(mac, False)

    def update(self, snapshot: Iterable[str]) -> List[Transition]:
        """Apply a poll snapshot and return the transitions it caused.

        All disconnects are reported before any connect or discovery.
        """
        seen = list(dict.fromkeys(snapshot))
        present = set(seen)
        updated: List[Transition] = []

        for mac, connected in self.devices.items():
            if connected and mac not in present:
                self.devices[mac] = False
                updated.append((mac, Update.DISCONNECTED))

        for mac in seen:
            connected = self.devices.get(mac)
            if connected is None:
                self.devices[mac] = True
                updated.append((mac, Update.NEW))
            elif not connected:
                self.devices[mac] = True
                updated.append((mac, Update.CONNECTED))

        return updated


class DeviceRegistry:
    """Lock-guarded owner of the shared :class:`DeviceStates`.

    The poller is the only writer and the metrics endpoint the only reader.
    Both go through :meth:`locked`, which must not be held across I/O.
    """

    def __init__(self, states: DeviceStates | None = None) -> None:
        self._states = states if states is not None else DeviceStates()
        self._lock = threading.Lock()

    @contextlib.contextmanager
    def locked(self) -> Iterator[DeviceStates]:
        with self._lock:
            yield self._states


__all__ = ["Update", "Transition", "DeviceStates", "DeviceRegistry"]
