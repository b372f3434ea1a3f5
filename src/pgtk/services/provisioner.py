"""Readiness-gated database creation for pgtk."""

import time
from typing import Callable, Optional

from pgtk.constants import PROVISION_RETRY_COUNT, PROVISION_RETRY_DELAY_SECONDS
from pgtk.errors import CommandError, ProvisionFailure
from pgtk.errors_catalog import actionable_error
from pgtk.models import ProvisionAttempt
from pgtk.services.command_runner import CommandRunner, resolve_binary


class Provisioner:
    """Creates the target database, retrying while the server comes up."""

    def __init__(
        self,
        logger,
        console,
        bin_dir: Optional[str] = None,
        retry_count: int = PROVISION_RETRY_COUNT,
        retry_delay_seconds: float = PROVISION_RETRY_DELAY_SECONDS,
    ):
        self.logger = logger
        self.console = console
        self.bin_dir = bin_dir
        self.retry_count = retry_count
        self.retry_delay_seconds = retry_delay_seconds

    def build_command(self, host: str, port: int, user: str, dbname: str):
        return [
            resolve_binary("createdb", self.bin_dir),
            "-h",
            host,
            "-p",
            str(port),
            "--username",
            user,
            dbname,
        ]

    def attempt(self, number: int, cmd, run_cmd: Callable, quiet: bool = False) -> ProvisionAttempt:
        try:
            result = run_cmd(cmd, check=False, capture_output=quiet)
        except CommandError as exc:
            return ProvisionAttempt(number=number, returncode=-1, message=str(exc))

        if result.returncode == 0:
            return ProvisionAttempt(number=number, returncode=0)
        return ProvisionAttempt(
            number=number,
            returncode=result.returncode,
            message=CommandRunner.describe_failure(cmd, result),
        )

    def provision(
        self,
        host: str,
        port: int,
        user: str,
        dbname: str,
        run_cmd: Callable,
        quiet: bool = False,
    ) -> ProvisionAttempt:
        cmd = self.build_command(host, port, user, dbname)
        max_attempts = self.retry_count + 1
        self.console.print(f"[yellow]Creating database {dbname} on {host}:{port}...[/yellow]")

        attempt = None
        for number in range(1, max_attempts + 1):
            attempt = self.attempt(number, cmd, run_cmd, quiet=quiet)
            if attempt.ok:
                self.console.print(f"[green]Database {dbname} is ready.[/green]")
                self.logger.info("Created database %s on attempt %s", dbname, number)
                return attempt

            self.logger.warning(
                "Database creation failed on attempt %s/%s.\n%s",
                number,
                max_attempts,
                attempt.message,
            )
            if number < max_attempts:
                time.sleep(self.retry_delay_seconds)

        message = actionable_error(
            "provision_failed",
            dbname=dbname,
            attempts=max_attempts,
            port=port,
            user=user,
        )
        if attempt is not None and attempt.message:
            message = f"{message}\n{attempt.message}"
        raise ProvisionFailure(message)
