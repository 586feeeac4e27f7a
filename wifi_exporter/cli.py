"""wifi-exporter command-line interface."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn
from rich.logging import RichHandler

from wifi_exporter.api import create_app
from wifi_exporter.config import Config
from wifi_exporter.errors import WifiExporterError
from wifi_exporter.lister import WifiLister
from wifi_exporter.models import DeviceRegistry
from wifi_exporter.notifier import MqttNotifier
from wifi_exporter.poller import Poller

logger = logging.getLogger("wifi_exporter")


def _configure_logging(level: str) -> None:
	logging.basicConfig(
		level=level.upper(),
		format="%(message)s",
		datefmt="[%X]",
		handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
	)


async def _serve(config: Config) -> int:
	notifier: Optional[MqttNotifier] = None
	mqtt_password: Optional[str] = None
	if config.mqtt is not None:
		mqtt_password = config.mqtt.password()
		logger.info("mqtt enabled")
	else:
		logger.info("mqtt disabled")

	if config.exporter.interfaces:
		logger.info("Listening on interfaces: %s", ", ".join(config.exporter.interfaces))
	else:
		logger.info("Listening on default interface")

	lister = await WifiLister.connect(
		config.ssh.address,
		config.ssh.key(),
		config.ssh.pubkey(),
		config.exporter.interfaces,
		username=config.ssh.username,
	)

	if config.mqtt is not None and mqtt_password is not None:
		notifier = MqttNotifier.start(
			config.mqtt.hostname,
			config.mqtt.port,
			config.mqtt.username,
			mqtt_password,
		)

	registry = DeviceRegistry()
	poller = Poller(
		lister,
		registry,
		notifier=notifier,
		interval=config.exporter.interval,
	)
	server = uvicorn.Server(
		uvicorn.Config(
			create_app(registry),
			host=config.exporter.address,
			port=config.exporter.port,
			log_config=None,
			access_log=False,
		)
	)

	poll_task = asyncio.create_task(poller.run(), name="poller")
	serve_task = asyncio.create_task(server.serve(), name="metrics-server")
	try:
		done, _ = await asyncio.wait({poll_task, serve_task}, return_when=asyncio.FIRST_COMPLETED)
		if poll_task in done:
			server.should_exit = True
			await serve_task
			poll_task.result()
		else:
			# server shut down on SIGINT/SIGTERM; stop polling between cycles
			poller.request_stop()
			await poll_task
	finally:
		for task in (poll_task, serve_task):
			if not task.done():
				task.cancel()
		if notifier is not None:
			notifier.close()
		await lister.close()
	return 0


def _build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="wifi-exporter",
		description="Export associated wifi stations as Prometheus metrics and MQTT device trackers",
	)
	parser.add_argument("config", type=Path, help="Path to config file")
	parser.add_argument(
		"--log-level",
		default="INFO",
		choices=("DEBUG", "INFO", "WARNING", "ERROR"),
		type=str.upper,
		help="Logging verbosity",
	)
	return parser


def main(argv: Optional[List[str]] = None) -> int:
	parser = _build_parser()
	args = parser.parse_args(argv)
	_configure_logging(args.log_level)
	try:
		config = Config.load(args.config)
		return asyncio.run(_serve(config))
	except WifiExporterError as exc:
		logger.error("%s", exc)
		return 1
	except KeyboardInterrupt:
		return 0


if __name__ == "__main__":
	sys.exit(main())
