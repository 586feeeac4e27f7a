"""Exception hierarchy for wifi-exporter."""
from __future__ import annotations


class WifiExporterError(Exception):
    """Base exception for all wifi-exporter errors."""


class ConfigError(WifiExporterError):
    """Configuration could not be loaded."""


class ConfigReadError(ConfigError):
    """The configuration file could not be read."""


class ConfigParseError(ConfigError):
    """The configuration file is not valid TOML or misses required options."""


class SecretError(WifiExporterError):
    """A secret file could not be resolved or read."""


class SshError(WifiExporterError):
    """Failure establishing the SSH session to the access point."""


class SshConnectError(SshError):
    """TCP connect or SSH handshake failed."""


class SshAuthError(SshError):
    """Public-key authentication was rejected."""


class ListError(WifiExporterError):
    """Listing associated stations failed for one poll."""


class PublishError(WifiExporterError):
    """A single MQTT publish was refused or not acknowledged."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


__all__ = [
    "WifiExporterError",
    "ConfigError",
    "ConfigReadError",
    "ConfigParseError",
    "SecretError",
    "SshError",
    "SshConnectError",
    "SshAuthError",
    "ListError",
    "PublishError",
]
