"""
Main CLI entry point for mirrorsync.
"""

# Standard library imports
import importlib.metadata
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from loguru import logger
from pydantic import ValidationError

# Local imports
from mirrorsync import __version__
from mirrorsync.client import SyncClient
from mirrorsync.config import ClientConfig, ServerConfig
from mirrorsync.errors import MirrorSyncError, WatchRegistrationError
from mirrorsync.server import serve as run_server
from mirrorsync.utils.logging import configure_logging
from mirrorsync.utils.rich_console import print_error, print_panel, print_table


app = typer.Typer(
    help="mirrorsync - mirror a local directory tree to a remote build host.\n\n"
    "Run 'mirrorsync serve' on the build host and 'mirrorsync sync URL' next to your sources.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"
    ),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """
    mirrorsync - mirror a local directory tree to a remote build host
    """
    configure_logging(log_level, log_file)


def _fail(message: str) -> None:
    print_error(message)
    raise typer.Exit(1)


def _client_config(**options) -> ClientConfig:
    try:
        return ClientConfig.from_env(**options)
    except ValidationError as error:
        _fail(str(error))


@app.command()
def serve(
    root: Optional[Path] = typer.Option(None, "--root", help="Directory to write the mirrored tree to"),
    host: Optional[str] = typer.Option(None, "--host", help="Listen address (default 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", help="Listen port (default 8080)"),
    cmd: Optional[str] = typer.Option(
        None, "--cmd", help="Command executed after files have been written, e.g. 'go build'"
    ),
):
    """Receive pushed files and run the post-sync command after each change."""
    try:
        config = ServerConfig.from_env(root=root, host=host, port=port, command=cmd)
    except ValidationError as error:
        _fail(str(error))
    print_panel(
        f"Serving {config.root.resolve()} on {config.host}:{config.port}\n"
        f"Post-sync command: {config.command or '(none)'}",
        title="mirrorsync serve",
    )
    run_server(config)


@app.command()
def sync(
    target: Optional[str] = typer.Argument(None, help="Base URL of the receiving server"),
    root: Optional[Path] = typer.Option(None, "--root", help="Local directory to mirror"),
    buffer: Optional[float] = typer.Option(
        None, "--buffer", help="Coalesce events for this many seconds (0 = pass through)"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Round-trip timeout in seconds"),
    once: bool = typer.Option(False, "--once", help="Run the initial sync only"),
):
    """Mirror the local tree to TARGET and keep it in sync."""
    config = _client_config(target=target, root=root, buffer=buffer, timeout=timeout)
    client = SyncClient(config)

    if once:
        try:
            client.initial_sync()
        except MirrorSyncError as error:
            logger.error(f"Initial sync failed: {error}")
            raise typer.Exit(1)
        finally:
            client.close()
        return

    typer.echo(f"Mirroring {config.root.resolve()} to {config.target} (Ctrl+C to stop)...")
    try:
        client.run_forever()
    except KeyboardInterrupt:
        typer.echo("\nStopped watching.")
    except WatchRegistrationError as error:
        logger.critical(str(error))
        raise typer.Exit(1)


@app.command()
def diff(
    target: Optional[str] = typer.Argument(None, help="Base URL of the receiving server"),
    root: Optional[Path] = typer.Option(None, "--root", help="Local directory to compare"),
):
    """Show what a sync would push and delete, without changing anything."""
    config = _client_config(target=target, root=root)
    client = SyncClient(config)
    try:
        result = client.compute_diff()
    except MirrorSyncError as error:
        _fail(str(error))
    finally:
        client.close()

    if result.is_empty:
        typer.echo("Remote tree is up to date.")
        return
    rows = [["push", path] for path in result.push]
    rows.extend(["delete", path] for path in result.delete)
    styles = ["green"] * len(result.push) + ["red"] * len(result.delete)
    print_table(["Action", "Path"], rows, title=f"Changes for {config.target}", row_styles=styles)


@app.command()
def version():
    """Show the mirrorsync version."""
    try:
        installed = importlib.metadata.version("mirrorsync")
    except importlib.metadata.PackageNotFoundError:
        installed = __version__
    typer.echo(f"mirrorsync version: {installed}")


if __name__ == "__main__":
    app()
