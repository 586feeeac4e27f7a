"""Access point station listing over SSH, built on asyncssh."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import asyncssh

from wifi_exporter.config import DEFAULT_SSH_PORT, DEFAULT_SSH_USERNAME, parse_address
from wifi_exporter.errors import ListError, SshAuthError, SshConnectError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "wl assoclist"
INTERFACE_COMMAND = "wl -a {interface} assoclist"
LINE_PREFIX = "assoclist "

Connector = Callable[..., Awaitable[Any]]


def build_command(interfaces: Sequence[str]) -> str:
	"""Build the single shell command used for every poll."""
	if not interfaces:
		return DEFAULT_COMMAND
	return " && ".join(INTERFACE_COMMAND.format(interface=interface) for interface in interfaces)


def parse_assoclist(output: str) -> List[str]:
	"""Turn ``wl assoclist`` output into canonical (upper-cased) station ids."""
	devices: List[str] = []
	for line in output.splitlines():
		if line.startswith(LINE_PREFIX):
			line = line[len(LINE_PREFIX):]
		mac = line.strip()
		if mac:
			devices.append(mac.upper())
	return devices


class WifiLister:
	"""Lists associated stations by running ``wl`` on the access point."""

	def __init__(
		self,
		host: str,
		*,
		port: int = DEFAULT_SSH_PORT,
		username: str = DEFAULT_SSH_USERNAME,
		client_key: Any,
		interfaces: Sequence[str] = (),
		connector: Optional[Connector] = None,
	) -> None:
		self.host = host
		self.port = port
		self.username = username
		self.command = build_command(interfaces)
		self._client_key = client_key
		self._connector: Connector = connector or asyncssh.connect
		self._conn: Optional[Any] = None
		self._lock = asyncio.Lock()

	@classmethod
	async def connect(
		cls,
		address: str,
		key: str,
		pubkey: str,
		interfaces: Sequence[str] = (),
		*,
		username: str = DEFAULT_SSH_USERNAME,
		connector: Optional[Connector] = None,
	) -> "WifiLister":
		"""Open the SSH session used for the lifetime of the lister.

		Failures here are startup errors and are raised as :class:`SshError`
		subclasses rather than counted as poll failures.
		"""
		try:
			host, port = parse_address(address)
		except ValueError as exc:
			raise SshConnectError(f"invalid ssh address {address!r}: {exc}") from exc

		client_key = _import_keypair(key, pubkey)
		lister = cls(
			host,
			port=port,
			username=username,
			client_key=client_key,
			interfaces=interfaces,
			connector=connector,
		)
		logger.debug("connecting to ssh at %s:%s", host, port)
		try:
			await lister._open()
		except asyncssh.PermissionDenied as exc:
			raise SshAuthError(f"failed to authenticate ssh session: {exc}") from exc
		except (OSError, asyncssh.Error) as exc:
			raise SshConnectError(f"failed to connect to ssh server: {exc}") from exc
		logger.info("ssh connected to %s", host)
		return lister

	# ------------------------------------------------------------------
	# Lifecycle helpers
	# ------------------------------------------------------------------
	async def _open(self) -> Any:
		self._conn = await self._connector(
			self.host,
			port=self.port,
			username=self.username,
			client_keys=[self._client_key],
			known_hosts=None,
		)
		return self._conn

	async def close(self) -> None:
		async with self._lock:
			conn, self._conn = self._conn, None
			if conn is None:
				return
			conn.close()
			try:
				await conn.wait_closed()
			except (OSError, asyncssh.Error) as exc:
				logger.debug("ssh close reported %s", exc)

	async def __aenter__(self) -> "WifiLister":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
		await self.close()

	# ------------------------------------------------------------------
	# Polling
	# ------------------------------------------------------------------
	async def list_devices(self) -> List[str]:
		"""Run the listing command once and return the associated stations."""
		async with self._lock:
			try:
				conn = self._conn
				if conn is None:
					logger.info("re-establishing ssh session to %s", self.host)
					conn = await self._open()
				logger.debug("sending ssh command %r", self.command)
				result = await conn.run(self.command, check=True)
			except asyncssh.ProcessError as exc:
				message = f"listing command exited with status {exc.exit_status}"
				if exc.stderr:
					message = f"{message}: {str(exc.stderr).strip()}"
				raise ListError(message) from exc
			except (asyncssh.DisconnectError, asyncssh.ConnectionLost, asyncssh.ChannelOpenError, OSError) as exc:
				self._drop_connection()
				raise ListError(f"ssh session lost: {exc}") from exc
			except asyncssh.Error as exc:
				raise ListError(f"error listing devices: {exc}") from exc

		output = result.stdout or ""
		if isinstance(output, bytes):
			output = output.decode("utf-8", errors="replace")
		return parse_assoclist(output)

	def _drop_connection(self) -> None:
		conn, self._conn = self._conn, None
		if conn is not None:
			conn.abort()


def _import_keypair(key: str, pubkey: str) -> Any:
	try:
		private_key = asyncssh.import_private_key(key)
	except (asyncssh.KeyImportError, ValueError) as exc:
		raise SshAuthError(f"invalid ssh private key: {exc}") from exc
	try:
		public_key = asyncssh.import_public_key(pubkey)
	except (asyncssh.KeyImportError, ValueError) as exc:
		raise SshAuthError(f"invalid ssh public key: {exc}") from exc
	if public_key.public_data != private_key.public_data:
		raise SshAuthError("ssh public key does not match private key")
	return private_key


__all__ = [
	"WifiLister",
	"build_command",
	"parse_assoclist",
	"DEFAULT_COMMAND",
]
