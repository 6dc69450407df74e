"""
Receiving Server
================

Applies pushed files, directories and deletions to a local tree and runs the
post-sync command after each change. Exposed over HTTP by a FastAPI
application:

    GET    /<path>   checksum index of the subtree at <path> (JSON)
    POST   /<path>   Content-Type application/octet-stream: write the body as a file
                     Content-Type directory: make sure a directory exists
    DELETE /<path>   remove the file or directory tree

Each request is handled on its own; requests racing on the same path are
applied in whatever order they are serviced.
"""

import contextlib
import os
import shutil
import stat
import tempfile
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger

from mirrorsync import __version__
from mirrorsync.checksums import ChecksumIndex, compute_checksums, file_checksum
from mirrorsync.config import ServerConfig
from mirrorsync.errors import ApplyError, ChecksumError, InvalidPath, MirrorSyncError, PathNotFound
from mirrorsync.hooks import PostSyncCommand
from mirrorsync.utils.paths import normalize_key, resolve_under_root
from mirrorsync.wire import DIRECTORY, OCTET_STREAM


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class IncomingFile:
    """A file being received for ``key``.

    Chunks are written to a temporary sibling of the target, which only
    replaces the target on ``commit``. The replacement keeps the mode of the
    file it replaces; a new file gets ``0o666`` less the process umask.
    """

    def __init__(self, key: str, target: Path, mode: int):
        self.key = key
        self.target = target
        self.mode = mode
        self.size = 0
        fd, self._temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        self._file = os.fdopen(fd, "wb")

    def write(self, chunk: bytes) -> None:
        try:
            self._file.write(chunk)
        except OSError as error:
            raise ApplyError(f"Cannot write {self.key}: {error}") from error
        self.size += len(chunk)

    def commit(self) -> Path:
        try:
            self._file.close()
            os.chmod(self._temp_name, self.mode)
            os.replace(self._temp_name, self.target)
        except OSError as error:
            raise ApplyError(f"Cannot write {self.key}: {error}") from error
        self._temp_name = None
        logger.info(f"Wrote {normalize_key(self.key)} ({self.size} bytes)")
        return self.target

    def discard(self) -> None:
        """Drop the temporary file unless it was committed."""
        self._file.close()
        if self._temp_name is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(self._temp_name)
            self._temp_name = None


class ServerApplier:
    """Applies push and delete operations below ``root``."""

    def __init__(self, root: str | Path, command: PostSyncCommand | None = None):
        self.root = Path(root).resolve()
        self.command = command or PostSyncCommand("", self.root)
        self.umask = _current_umask()

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ServerApplier":
        return cls(config.root, PostSyncCommand(config.command, config.root))

    def _target(self, key: str) -> Path:
        return resolve_under_root(self.root, key)

    def index(self, key: str) -> ChecksumIndex:
        """Checksum index of the subtree at ``key``, keyed relative to it.

        A plain file yields a single entry keyed by its name.
        """
        target = self._target(key)
        if not os.path.lexists(target):
            raise PathNotFound(f"No such path: {normalize_key(key) or '/'}")
        try:
            if target.is_dir():
                return compute_checksums(target)
            return {target.name: file_checksum(target)}
        except ChecksumError as error:
            raise ApplyError(str(error)) from error
        except OSError as error:
            raise ApplyError(f"Cannot checksum {target}: {error}") from error

    def receive_file(self, key: str) -> IncomingFile:
        """Prepare to receive the file at ``key``.

        Missing parents are created and a directory in the way is removed.
        """
        target = self._target(key)
        if target == self.root:
            raise InvalidPath("Cannot write a file over the root")
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                mode = stat.S_IMODE(os.stat(target).st_mode)
            except FileNotFoundError:
                mode = 0o666 & ~self.umask
            return IncomingFile(key, target, mode)
        except OSError as error:
            raise ApplyError(f"Cannot write {key}: {error}") from error

    def write_file(self, key: str, content: bytes) -> Path:
        """Write ``content`` as the file at ``key`` in one go."""
        incoming = self.receive_file(key)
        try:
            incoming.write(content)
            return incoming.commit()
        finally:
            incoming.discard()

    def ensure_directory(self, key: str) -> Path:
        """Make sure a directory exists at ``key``, removing a file in the way."""
        target = self._target(key)
        try:
            if os.path.lexists(target) and (target.is_symlink() or not target.is_dir()):
                target.unlink()
            target.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise ApplyError(f"Cannot create directory {key}: {error}") from error
        logger.info(f"Created directory {normalize_key(key) or '/'}")
        return target

    def delete(self, key: str) -> Path:
        """Remove the file or directory tree at ``key``."""
        target = self._target(key)
        if not os.path.lexists(target):
            raise PathNotFound(f"No such path: {normalize_key(key) or '/'}")
        if target == self.root:
            raise InvalidPath("Cannot delete the root")
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as error:
            raise ApplyError(f"Cannot delete {key}: {error}") from error
        logger.info(f"Deleted {normalize_key(key)}")
        return target

    def run_command(self) -> str:
        """Run the post-sync command and return its combined output."""
        return self.command.run()


def _internal_error(error: Exception) -> PlainTextResponse:
    logger.error(str(error))
    message = f"Internal server error: {error}"
    output = getattr(error, "output", "")
    if output:
        message += "\n" + output
    return PlainTextResponse(message, status_code=500)


def create_app(config: ServerConfig | None = None, applier: ServerApplier | None = None) -> FastAPI:
    """Build the FastAPI application serving ``applier`` (or one built from ``config``)."""
    if applier is None:
        applier = ServerApplier.from_config(config or ServerConfig.from_env())

    app = FastAPI(title="mirrorsync", version=__version__)
    app.state.applier = applier

    @app.exception_handler(PathNotFound)
    async def not_found_handler(request: Request, exc: PathNotFound) -> Response:
        return PlainTextResponse(str(exc), status_code=404)

    @app.exception_handler(InvalidPath)
    async def invalid_path_handler(request: Request, exc: InvalidPath) -> Response:
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(MirrorSyncError)
    async def apply_error_handler(request: Request, exc: MirrorSyncError) -> Response:
        return _internal_error(exc)

    async def finish() -> Response:
        output = await run_in_threadpool(applier.run_command)
        if output:
            logger.info(output.rstrip())
        return PlainTextResponse(output)

    @app.api_route("/{path:path}", methods=["GET", "POST", "DELETE"])
    async def handle(path: str, request: Request) -> Response:
        key = normalize_key(path)

        if request.method == "GET":
            index = await run_in_threadpool(applier.index, key)
            return JSONResponse(index)

        if request.method == "POST":
            content_type = request.headers.get("content-type", "").split(";")[0].strip()
            if content_type == OCTET_STREAM:
                incoming = await run_in_threadpool(applier.receive_file, key)
                try:
                    async for chunk in request.stream():
                        if chunk:
                            await run_in_threadpool(incoming.write, chunk)
                    await run_in_threadpool(incoming.commit)
                finally:
                    incoming.discard()
                return await finish()
            if content_type == DIRECTORY:
                await run_in_threadpool(applier.ensure_directory, key)
                return await finish()
            return PlainTextResponse(f"Unsupported Content-Type: {content_type}", status_code=400)

        await run_in_threadpool(applier.delete, key)
        return await finish()

    return app


def serve(config: ServerConfig) -> None:
    """Run the receiving server until interrupted."""
    logger.info(f"Starting server on {config.host}:{config.port}, serving {config.root.resolve()}")
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="warning")
