"""
Configuration
=============

Explicit configuration values for the synchronizing client and the receiving
server. Values come from ``MIRRORSYNC_*`` environment variables (a ``.env``
file is honoured) and can be overridden by keyword arguments, which is how the
CLI passes its options.
"""

import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator


def _env(name: str) -> str | None:
    value = os.getenv(f"MIRRORSYNC_{name}")
    if value is None or value == "":
        return None
    return value


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    values = {key: value for key, value in defaults.items() if value is not None}
    values.update({key: value for key, value in overrides.items() if value is not None})
    return values


class ClientConfig(BaseModel):
    """Settings for the synchronizing side."""

    root: Path = Field(Path("."), description="Local directory to mirror")
    target: str = Field(..., description="Base URL of the receiving server")
    buffer: float = Field(
        0.0, description="Coalescing window in seconds, 0 passes every event through"
    )
    timeout: float | None = Field(None, description="Round-trip timeout in seconds, None waits forever")

    @field_validator("target")
    @classmethod
    def validate_target(cls, value: str) -> str:
        """Require an http(s) URL and normalize it to end with a slash."""
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"target must be an http or https URL: {value}")
        if not value.endswith("/"):
            value += "/"
        return value

    @field_validator("buffer")
    @classmethod
    def validate_buffer(cls, value: float) -> float:
        if value < 0:
            raise ValueError("buffer must not be negative")
        return value

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            return None
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Build from ``MIRRORSYNC_ROOT``, ``MIRRORSYNC_TO``, ``MIRRORSYNC_BUFFER``
        and ``MIRRORSYNC_TIMEOUT``, with ``overrides`` taking precedence."""
        load_dotenv(find_dotenv(usecwd=True))
        defaults = {
            "root": _env("ROOT"),
            "target": _env("TO"),
            "buffer": _env("BUFFER"),
            "timeout": _env("TIMEOUT"),
        }
        return cls(**_merge(defaults, overrides))


class ServerConfig(BaseModel):
    """Settings for the receiving side."""

    root: Path = Field(Path("."), description="Directory the pushed tree is written to")
    host: str = Field("0.0.0.0", description="Listen address")
    port: int = Field(8080, ge=0, le=65535, description="Listen port")
    command: str = Field("", description="Command run after every applied change")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ServerConfig":
        """Build from ``MIRRORSYNC_ROOT``, ``MIRRORSYNC_HOST``, ``MIRRORSYNC_PORT``
        and ``MIRRORSYNC_CMD``, with ``overrides`` taking precedence."""
        load_dotenv(find_dotenv(usecwd=True))
        defaults = {
            "root": _env("ROOT"),
            "host": _env("HOST"),
            "port": _env("PORT"),
            "command": os.getenv("MIRRORSYNC_CMD"),
        }
        return cls(**_merge(defaults, overrides))
