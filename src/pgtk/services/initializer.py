"""Data directory initialization for pgtk."""

import os
import tempfile
from typing import Callable, Optional

from pgtk.constants import PASSWORD_FILE_MODE
from pgtk.errors import CommandError, DirectoryConflict, InitFailure
from pgtk.errors_catalog import actionable_error
from pgtk.services.command_runner import resolve_binary


class InstanceInitializer:
    """Creates a fresh cluster directory with initdb."""

    def __init__(self, logger, console, filesystem_service, bin_dir: Optional[str] = None):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service
        self.bin_dir = bin_dir

    def build_command(self, directory: str, user: str, pwfile: str):
        return [
            resolve_binary("initdb", self.bin_dir),
            "--auth=trust",
            "-D",
            directory,
            "--username",
            user,
            "--pwfile",
            pwfile,
        ]

    def initialize(
        self,
        directory: str,
        fresh_start: bool,
        user: str,
        password: str,
        run_cmd: Callable,
        quiet: bool = False,
    ) -> str:
        home = os.path.abspath(os.path.expanduser(directory))

        if fresh_start:
            self.logger.info("Fresh start requested, removing %s", home)
            self.filesystem_service.cleanup_dir(home)
            if os.path.lexists(home):
                raise DirectoryConflict(actionable_error("fresh_start_failed", path=home))

        if os.path.lexists(home):
            raise DirectoryConflict(actionable_error("directory_conflict", path=home))

        self.console.print(f"[blue]Initializing PostgreSQL cluster in {home}...[/blue]")

        # initdb reads the superuser password from this file; it never shows up in argv.
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", prefix="pgtk-pw-", suffix=".txt"
        ) as pwfile:
            self.filesystem_service.set_permissions(pwfile.name, PASSWORD_FILE_MODE)
            pwfile.write(password)
            pwfile.flush()

            cmd = self.build_command(home, user, pwfile.name)
            try:
                result = run_cmd(cmd, check=False, capture_output=quiet)
            except CommandError as exc:
                raise InitFailure(str(exc)) from exc

        if result.returncode != 0:
            message = actionable_error("init_failed", path=home)
            stderr = (result.stderr or "").strip()
            if stderr:
                message = f"{message}\n{stderr}"
            raise InitFailure(message)

        self.logger.info("Initialized PostgreSQL cluster in %s", home)
        return home
