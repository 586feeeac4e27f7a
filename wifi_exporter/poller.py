"""Polling supervisor that feeds station snapshots into the registry."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol

from wifi_exporter.errors import ListError
from wifi_exporter.models import DeviceRegistry, Transition, Update

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
DEFAULT_FAILURE_THRESHOLD = 5
FAILURE_BASELINE = 1


class Lister(Protocol):
    async def list_devices(self) -> List[str]:
        ...


class Notifier(Protocol):
    async def dispatch(self, mac: str, update: Update) -> None:
        ...


class Poller:
    """Poll the access point at a fixed interval until failures pile up.

    A successful poll resets the failure counter to ``FAILURE_BASELINE``;
    each :class:`ListError` increments it and the error is re-raised once the
    counter reaches ``failure_threshold``.
    """

    def __init__(
        self,
        lister: Lister,
        registry: DeviceRegistry,
        *,
        notifier: Optional[Notifier] = None,
        interval: float = DEFAULT_INTERVAL,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        self.lister = lister
        self.registry = registry
        self.notifier = notifier
        self.interval = max(0.0, interval)
        self.failure_threshold = max(1, failure_threshold)
        self.failures = 0
        self._stop_event: Optional[asyncio.Event] = None

    async def run(self) -> None:
        """Poll forever; returns only after :meth:`request_stop`."""
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        logger.debug("poller started (interval=%ss, threshold=%s)", self.interval, self.failure_threshold)
        while not stop_event.is_set():
            await self.poll_once()
            await self._sleep_with_stop(self.interval, stop_event)
        logger.debug("poller stopped")

    def request_stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()

    async def poll_once(self) -> List[Transition]:
        """Run a single poll cycle and return the transitions it produced."""
        try:
            devices = await self.lister.list_devices()
        except ListError as exc:
            self.failures += 1
            logger.error(
                "Error while listing devices (%d/%d): %s",
                self.failures,
                self.failure_threshold,
                exc,
            )
            if self.failures >= self.failure_threshold:
                raise
            return []

        self.failures = FAILURE_BASELINE
        with self.registry.locked() as states:
            updates = states.update(devices)

        for mac, update in updates:
            logger.info("change detected: %s %s", mac, update)
            if self.notifier is not None:
                await self.notifier.dispatch(mac, update)
        return updates

    async def _sleep_with_stop(self, duration: float, stop_event: asyncio.Event) -> None:
        if duration <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=duration)
        except asyncio.TimeoutError:
            pass


__all__ = ["Poller", "Lister", "Notifier", "FAILURE_BASELINE"]
