"""Behaviour of the station diff engine."""
from __future__ import annotations

import threading
import unittest

from wifi_exporter.models import DeviceRegistry, DeviceStates, Update


class DeviceStatesTest(unittest.TestCase):
    def setUp(self) -> None:
        self.states = DeviceStates()

    def test_first_snapshot_discovers_every_device(self) -> None:
        updates = self.states.update(["A", "B"])
        self.assertEqual(updates, [("A", Update.NEW), ("B", Update.NEW)])
        self.assertEqual(self.states.devices, {"A": True, "B": True})

    def test_identical_snapshot_is_idempotent(self) -> None:
        self.states.update(["A", "B"])
        self.assertEqual(self.states.update(["B", "A"]), [])
        self.assertEqual(self.states.update(["A", "B"]), [])

    def test_missing_device_is_disconnected_but_kept(self) -> None:
        self.states.update(["A", "B"])
        updates = self.states.update(["B"])
        self.assertEqual(updates, [("A", Update.DISCONNECTED)])
        self.assertEqual(self.states.devices, {"A": False, "B": True})

    def test_known_device_reconnects(self) -> None:
        self.states.update(["A"])
        self.states.update([])
        self.assertEqual(self.states.update(["A"]), [("A", Update.CONNECTED)])
        self.assertTrue(self.states.is_connected("A"))

    def test_disconnects_precede_connects_and_discoveries(self) -> None:
        self.states.update(["A", "B", "C"])
        self.states.update(["C"])
        updates = self.states.update(["D", "A", "Z"])
        self.assertEqual(
            updates,
            [
                ("C", Update.DISCONNECTED),
                ("D", Update.NEW),
                ("A", Update.CONNECTED),
                ("Z", Update.NEW),
            ],
        )
        kinds = [kind for _, kind in updates]
        first_connect = min(i for i, kind in enumerate(kinds) if kind is not Update.DISCONNECTED)
        self.assertTrue(all(kind is Update.DISCONNECTED for kind in kinds[:first_connect]))
        self.assertTrue(all(kind is not Update.DISCONNECTED for kind in kinds[first_connect:]))

    def test_duplicates_produce_single_event(self) -> None:
        self.assertEqual(self.states.update(["A", "A", "A"]), [("A", Update.NEW)])
        self.states.update([])
        self.assertEqual(self.states.update(["A", "A"]), [("A", Update.CONNECTED)])

    def test_empty_snapshot_disconnects_everything(self) -> None:
        self.states.update(["A", "B"])
        updates = self.states.update([])
        self.assertEqual(sorted(updates), [("A", Update.DISCONNECTED), ("B", Update.DISCONNECTED)])
        self.assertEqual(self.states.update([]), [])
        self.assertEqual(len(self.states), 2)

    def test_update_names(self) -> None:
        self.assertEqual(str(Update.NEW), "discovered")
        self.assertEqual(str(Update.CONNECTED), "connected")
        self.assertEqual(str(Update.DISCONNECTED), "disconnected")


class DeviceRegistryTest(unittest.TestCase):
    def test_locked_yields_owned_states(self) -> None:
        states = DeviceStates()
        registry = DeviceRegistry(states)
        with registry.locked() as locked_states:
            self.assertIs(locked_states, states)
            locked_states.update(["A"])
        with registry.locked() as locked_states:
            self.assertIn("A", locked_states)

    def test_lock_is_exclusive(self) -> None:
        registry = DeviceRegistry()
        acquired = threading.Event()

        def reader() -> None:
            with registry.locked():
                acquired.set()

        with registry.locked():
            thread = threading.Thread(target=reader)
            thread.start()
            self.assertFalse(acquired.wait(0.05))
        thread.join(timeout=1.0)
        self.assertTrue(acquired.is_set())


if __name__ == "__main__":
    unittest.main()
