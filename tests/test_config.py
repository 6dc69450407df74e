"""Tests for client and server configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mirrorsync.config import ClientConfig, ServerConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and .env file out of the tests."""
    for name in ["ROOT", "TO", "BUFFER", "TIMEOUT", "HOST", "PORT", "CMD"]:
        # set first so teardown also removes values loaded from .env
        monkeypatch.setenv(f"MIRRORSYNC_{name}", "")
        monkeypatch.delenv(f"MIRRORSYNC_{name}")
    monkeypatch.chdir(tmp_path)


def test_target_gets_trailing_slash():
    assert ClientConfig(target="http://host:8080").target == "http://host:8080/"
    assert ClientConfig(target="http://host:8080/sub/").target == "http://host:8080/sub/"


@pytest.mark.parametrize("target", ["host:8080", "ftp://host/", "not a url"])
def test_target_must_be_http(target):
    with pytest.raises(ValidationError):
        ClientConfig(target=target)


def test_client_defaults():
    config = ClientConfig(target="http://host/")

    assert config.root == Path(".")
    assert config.buffer == 0.0
    assert config.timeout is None


def test_negative_buffer_rejected():
    with pytest.raises(ValidationError):
        ClientConfig(target="http://host/", buffer=-1)


def test_client_from_env(monkeypatch):
    monkeypatch.setenv("MIRRORSYNC_TO", "http://env-host:9000")
    monkeypatch.setenv("MIRRORSYNC_BUFFER", "0.25")
    monkeypatch.setenv("MIRRORSYNC_TIMEOUT", "30")

    config = ClientConfig.from_env()

    assert config.target == "http://env-host:9000/"
    assert config.buffer == 0.25
    assert config.timeout == 30.0


def test_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("MIRRORSYNC_TO", "http://env-host:9000")

    config = ClientConfig.from_env(target="http://cli-host:1234", buffer=None)

    assert config.target == "http://cli-host:1234/"
    assert config.buffer == 0.0


def test_client_from_dotenv(tmp_path):
    (tmp_path / ".env").write_text("MIRRORSYNC_TO=http://dotenv-host:8080\n")

    config = ClientConfig.from_env()

    assert config.target == "http://dotenv-host:8080/"


def test_server_defaults_and_env(monkeypatch):
    assert ServerConfig().port == 8080
    assert ServerConfig().command == ""

    monkeypatch.setenv("MIRRORSYNC_PORT", "9090")
    monkeypatch.setenv("MIRRORSYNC_CMD", "go build")
    config = ServerConfig.from_env(host="127.0.0.1")

    assert config.port == 9090
    assert config.command == "go build"
    assert config.host == "127.0.0.1"


def test_server_port_range():
    with pytest.raises(ValidationError):
        ServerConfig(port=70000)
