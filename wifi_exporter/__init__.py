"""Track wifi stations on an access point and export them to MQTT and Prometheus."""
from wifi_exporter.errors import WifiExporterError
from wifi_exporter.models import DeviceRegistry, DeviceStates, Update

__version__ = "0.1.0"

__all__ = [
    "DeviceRegistry",
    "DeviceStates",
    "Update",
    "WifiExporterError",
    "__version__",
]
