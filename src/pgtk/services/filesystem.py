"""Filesystem helpers for pgtk."""

import logging
import os
import shutil
import sys

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def cleanup_dir(self, path: str):
        if os.path.isdir(path) and not os.path.islink(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except OSError as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
        elif os.path.lexists(path):
            self.remove_file(path)

    def remove_file(self, path: str):
        try:
            os.remove(path)
            self.logger.debug("Removed file: %s", path)
        except FileNotFoundError:
            return
        except OSError as exc:
            message = f"Warning: Could not remove {path}: {exc}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
