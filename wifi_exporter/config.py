"""TOML configuration and secret-file loading."""
from __future__ import annotations

import ipaddress
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from wifi_exporter.errors import ConfigParseError, ConfigReadError, SecretError

DEFAULT_MQTT_PORT = 1883
DEFAULT_SSH_PORT = 22
DEFAULT_SSH_USERNAME = "admin"
DEFAULT_EXPORTER_ADDRESS = "127.0.0.1"
DEFAULT_POLL_INTERVAL = 5.0


def load_secret(path: str | Path) -> str:
	"""Read a secret from ``path``.

	Environment references such as ``$CREDENTIALS_DIRECTORY/key`` are expanded
	first so systemd credentials can be referenced directly from the config.
	"""
	raw = str(path)
	expanded = os.path.expandvars(raw)
	if "$" in expanded:
		raise SecretError(f"unresolved variable in secret path {raw!r}")
	try:
		return Path(expanded).read_text(encoding="utf-8").rstrip()
	except OSError as exc:
		raise SecretError(f"failed to read secret {expanded!r}: {exc}") from exc


def parse_address(value: str, default_port: int = DEFAULT_SSH_PORT) -> Tuple[str, int]:
	"""Split ``host[:port]`` into its parts."""
	value = value.strip()
	if not value:
		raise ValueError("address is empty")
	if value.startswith("["):
		host, _, rest = value[1:].partition("]")
		port = rest.lstrip(":")
		return host, int(port) if port else default_port
	host, sep, maybe_port = value.rpartition(":")
	if sep and host and ":" not in host:
		if not maybe_port.isdigit():
			raise ValueError(f"invalid port in address {value!r}")
		return host, int(maybe_port)
	return value, default_port


@dataclass(slots=True, frozen=True)
class SshConfig:
	"""Connection details for the access point."""

	address: str
	key_file: str
	pubkey_file: str
	username: str = DEFAULT_SSH_USERNAME

	@property
	def host(self) -> str:
		return parse_address(self.address)[0]

	@property
	def port(self) -> int:
		return parse_address(self.address)[1]

	def key(self) -> str:
		return load_secret(self.key_file)

	def pubkey(self) -> str:
		return load_secret(self.pubkey_file)


@dataclass(slots=True, frozen=True)
class MqttConfig:
	hostname: str
	username: str
	password_file: str
	port: int = DEFAULT_MQTT_PORT

	def password(self) -> str:
		return load_secret(self.password_file)


@dataclass(slots=True, frozen=True)
class ExporterConfig:
	port: int
	address: str = DEFAULT_EXPORTER_ADDRESS
	interfaces: Tuple[str, ...] = ()
	interval: float = DEFAULT_POLL_INTERVAL


@dataclass(slots=True, frozen=True)
class Config:
	"""Top-level configuration bundle."""

	ssh: SshConfig
	exporter: ExporterConfig
	mqtt: Optional[MqttConfig] = field(default=None)

	@classmethod
	def load(cls, path: str | Path) -> "Config":
		try:
			content = Path(path).read_text(encoding="utf-8")
		except OSError as exc:
			raise ConfigReadError(f"failed to read config: {exc}") from exc
		return cls.from_toml(content)

	@classmethod
	def from_toml(cls, content: str) -> "Config":
		try:
			data = tomllib.loads(content)
		except tomllib.TOMLDecodeError as exc:
			raise ConfigParseError(f"failed to parse config: {exc}") from exc
		return cls.from_mapping(data)

	@classmethod
	def from_mapping(cls, data: Mapping[str, Any]) -> "Config":
		ssh = _section(data, "ssh")
		exporter = _section(data, "exporter")
		mqtt_section = data.get("mqtt")

		ssh_config = SshConfig(
			address=_require(ssh, "ssh", "address", str),
			key_file=_require(ssh, "ssh", "key_file", str),
			pubkey_file=_require(ssh, "ssh", "pubkey_file", str),
			username=_optional(ssh, "ssh", "username", str, DEFAULT_SSH_USERNAME),
		)
		try:
			parse_address(ssh_config.address)
		except ValueError as exc:
			raise ConfigParseError(f"failed to parse config: ssh.address: {exc}") from exc

		address = _optional(exporter, "exporter", "address", str, DEFAULT_EXPORTER_ADDRESS)
		try:
			address = str(ipaddress.ip_address(address))
		except ValueError as exc:
			raise ConfigParseError(f"failed to parse config: exporter.address: {exc}") from exc

		interfaces = _optional(exporter, "exporter", "interfaces", list, [])
		if not all(isinstance(item, str) for item in interfaces):
			raise ConfigParseError("failed to parse config: exporter.interfaces must be a list of strings")

		interval = float(_optional(exporter, "exporter", "interval", (int, float), DEFAULT_POLL_INTERVAL))
		if interval <= 0:
			raise ConfigParseError("failed to parse config: exporter.interval must be positive")

		exporter_config = ExporterConfig(
			port=_port(_require(exporter, "exporter", "port", int), "exporter.port"),
			address=address,
			interfaces=tuple(interfaces),
			interval=interval,
		)

		mqtt_config: Optional[MqttConfig] = None
		if mqtt_section is not None:
			if not isinstance(mqtt_section, dict):
				raise ConfigParseError("failed to parse config: [mqtt] must be a table")
			mqtt_config = MqttConfig(
				hostname=_require(mqtt_section, "mqtt", "hostname", str),
				username=_require(mqtt_section, "mqtt", "username", str),
				password_file=_require(mqtt_section, "mqtt", "password_file", str),
				port=_port(_optional(mqtt_section, "mqtt", "port", int, DEFAULT_MQTT_PORT), "mqtt.port"),
			)

		return cls(ssh=ssh_config, exporter=exporter_config, mqtt=mqtt_config)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
	section = data.get(name)
	if section is None:
		raise ConfigParseError(f"failed to parse config: missing [{name}] section")
	if not isinstance(section, dict):
		raise ConfigParseError(f"failed to parse config: [{name}] must be a table")
	return section


def _require(section: Mapping[str, Any], name: str, key: str, kind: Any) -> Any:
	if key not in section:
		raise ConfigParseError(f"failed to parse config: missing {name}.{key}")
	return _check(section[key], name, key, kind)


def _optional(section: Mapping[str, Any], name: str, key: str, kind: Any, default: Any) -> Any:
	if key not in section:
		return default
	return _check(section[key], name, key, kind)


def _check(value: Any, name: str, key: str, kind: Any) -> Any:
	# bool is an int subclass; never accept it for numeric options
	if isinstance(value, bool) or not isinstance(value, kind):
		raise ConfigParseError(f"failed to parse config: invalid type for {name}.{key}")
	return value


def _port(value: int, label: str) -> int:
	if not 0 < value < 65536:
		raise ConfigParseError(f"failed to parse config: {label} out of range")
	return value


__all__ = [
	"Config",
	"SshConfig",
	"MqttConfig",
	"ExporterConfig",
	"load_secret",
	"parse_address",
]
