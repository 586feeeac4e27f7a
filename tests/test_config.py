"""Configuration and secret loading."""
from __future__ import annotations

import pytest

from wifi_exporter.config import Config, load_secret, parse_address
from wifi_exporter.errors import ConfigParseError, ConfigReadError, SecretError

MINIMAL = """
[ssh]
address = "192.168.1.1"
key_file = "/run/secrets/key"
pubkey_file = "/run/secrets/key.pub"

[exporter]
port = 9100
"""

FULL = """
[ssh]
address = "router.lan:2222"
username = "root"
key_file = "key"
pubkey_file = "key.pub"

[mqtt]
hostname = "broker"
username = "exporter"
password_file = "mqtt"

[exporter]
address = "0.0.0.0"
port = 9100
interfaces = ["eth1", "eth2"]
interval = 10
"""


def test_minimal_config_defaults():
    config = Config.from_toml(MINIMAL)
    assert config.mqtt is None
    assert config.ssh.username == "admin"
    assert config.ssh.port == 22
    assert config.exporter.address == "127.0.0.1"
    assert config.exporter.interfaces == ()
    assert config.exporter.interval == 5.0


def test_full_config():
    config = Config.from_toml(FULL)
    assert config.ssh.host == "router.lan"
    assert config.ssh.port == 2222
    assert config.ssh.username == "root"
    assert config.mqtt is not None
    assert config.mqtt.port == 1883
    assert config.exporter.interfaces == ("eth1", "eth2")
    assert config.exporter.interval == 10.0


def test_load_from_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(MINIMAL, encoding="utf-8")
    assert Config.load(path).exporter.port == 9100


def test_missing_file_is_read_error(tmp_path):
    with pytest.raises(ConfigReadError):
        Config.load(tmp_path / "missing.toml")


@pytest.mark.parametrize(
    "content",
    [
        "not = [valid",
        "[exporter]\nport = 9100\n",
        MINIMAL.replace("port = 9100", 'port = "9100"'),
        MINIMAL.replace("port = 9100", "port = 70000"),
        MINIMAL + 'address = "localhost"\n',
        MINIMAL + "[mqtt]\nhostname = \"broker\"\n",
    ],
)
def test_invalid_config_is_parse_error(content):
    with pytest.raises(ConfigParseError):
        Config.from_toml(content)


def test_parse_address():
    assert parse_address("10.0.0.1") == ("10.0.0.1", 22)
    assert parse_address("10.0.0.1:2022") == ("10.0.0.1", 2022)
    assert parse_address("[fe80::1]:2022") == ("fe80::1", 2022)
    assert parse_address("fe80::1") == ("fe80::1", 22)


def test_load_secret_strips_and_expands(tmp_path, monkeypatch):
    (tmp_path / "password").write_text("hunter2\n", encoding="utf-8")
    monkeypatch.setenv("CREDENTIALS_DIRECTORY", str(tmp_path))
    assert load_secret("$CREDENTIALS_DIRECTORY/password") == "hunter2"


def test_load_secret_errors(tmp_path, monkeypatch):
    monkeypatch.delenv("CREDENTIALS_DIRECTORY", raising=False)
    with pytest.raises(SecretError):
        load_secret("$CREDENTIALS_DIRECTORY/password")
    with pytest.raises(SecretError):
        load_secret(tmp_path / "missing")
