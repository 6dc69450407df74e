"""
HTTP Transport
==============

Client side of the wire protocol spoken with ``mirrorsync serve``. One call is
one HTTP round trip; nothing is retried.

Usage:
    remote = RemoteTree("http://buildhost:8080/")
    index = remote.fetch_index()
    remote.push_file("main.go", "./main.go")
"""

import os
from pathlib import Path
from urllib.parse import quote

import httpx
from loguru import logger

from mirrorsync.checksums import ChecksumIndex
from mirrorsync.errors import TransportError
from mirrorsync.wire import DIRECTORY, OCTET_STREAM


class RemoteTree:
    """Remote directory tree reachable under ``base_url``.

    Args:
        base_url: Server URL, treated as a directory
        timeout: Round-trip timeout in seconds, None waits indefinitely
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def _request(self, method: str, key: str, **kwargs) -> httpx.Response:
        url = quote(key.lstrip("/"))
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as error:
            raise TransportError(key, str(error)) from error
        if response.status_code != 200:
            detail = response.text.strip() or response.reason_phrase
            raise TransportError(key, detail, response.status_code)
        return response

    def fetch_index(self, key: str = "") -> ChecksumIndex:
        """Checksum index of the remote subtree at ``key``."""
        response = self._request("GET", key)
        try:
            payload = response.json()
        except ValueError as error:
            raise TransportError(key, f"invalid checksum index: {error}") from error
        if not isinstance(payload, dict) or not all(
            isinstance(value, int) for value in payload.values()
        ):
            raise TransportError(key, "invalid checksum index: expected an object of integers")
        return payload

    def push_file(self, key: str, path: str | Path) -> str:
        """Send the contents of ``path`` to be stored at ``key``.

        Raises:
            OSError: If the local file cannot be read
            TransportError: If the request fails or is rejected
        """
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            # streamed from the open file in chunks
            response = self._request(
                "POST", key, content=f, headers={"Content-Type": OCTET_STREAM}
            )
        logger.debug(f"Pushed {key} ({size} bytes)")
        return response.text

    def push_directory(self, key: str) -> str:
        """Make sure a directory exists at ``key`` on the remote side."""
        response = self._request("POST", key, headers={"Content-Type": DIRECTORY})
        logger.debug(f"Pushed directory {key}")
        return response.text

    def delete(self, key: str) -> str:
        """Remove ``key`` (recursively for directories) on the remote side."""
        response = self._request("DELETE", key)
        logger.debug(f"Deleted {key}")
        return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RemoteTree":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
