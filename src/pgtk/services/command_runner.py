"""Subprocess execution service for pgtk."""

import os
import subprocess
from typing import List, Optional

from pgtk.errors import CommandError
from pgtk.errors_catalog import actionable_error


class CommandRunner:
    """Runs external commands as argument lists, never through a shell."""

    def __init__(self, logger):
        self.logger = logger

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
            )
        except FileNotFoundError as exc:
            raise CommandError(actionable_error("binary_not_found", command=cmd[0])) from exc
        except OSError as exc:
            raise CommandError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0 or not check:
            return result

        raise CommandError(self.describe_failure(cmd, result))

    @staticmethod
    def describe_failure(cmd: List[str], result: subprocess.CompletedProcess) -> str:
        message = f"Command failed ({result.returncode}): {' '.join(cmd)}"
        stderr = (result.stderr or "").strip()
        if stderr:
            message = f"{message}\n{stderr}"
        return message


def resolve_binary(name: str, bin_dir: Optional[str] = None) -> str:
    """Returns the path of a PostgreSQL binary, or its bare name to search PATH."""
    if bin_dir:
        return os.path.join(os.path.expanduser(bin_dir), name)
    return name
