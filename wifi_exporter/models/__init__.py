"""State model for associated wifi stations."""
from .device_states import DeviceRegistry, DeviceStates, Transition, Update

__all__ = [
    "DeviceRegistry",
    "DeviceStates",
    "Transition",
    "Update",
]
