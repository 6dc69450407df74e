"""Post-sync command hook run by the receiving side after each applied change."""

import shlex
import subprocess
from pathlib import Path

from loguru import logger

from mirrorsync.errors import CommandError


class PostSyncCommand:
    """Runs a configured command and captures its combined output."""

    def __init__(self, command: str, cwd: str | Path = "."):
        self.command = command.strip()
        self.cwd = Path(cwd)

    @property
    def enabled(self) -> bool:
        return bool(self.command)

    def run(self) -> str:
        """Run the command in ``cwd``.

        Returns:
            str: Combined stdout and stderr, empty when no command is configured

        Raises:
            CommandError: If the command cannot be started or exits non-zero
        """
        if not self.enabled:
            return ""
        args = shlex.split(self.command)
        logger.debug(f"Running post-sync command: {args}")
        try:
            result = subprocess.run(
                args,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as error:
            raise CommandError(self.command, str(error)) from error

        output = result.stdout.decode(errors="replace")
        if result.returncode != 0:
            raise CommandError(self.command, f"exit status {result.returncode}", output)
        return output
