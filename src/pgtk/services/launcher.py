"""Server process launch and teardown for pgtk."""

import socket
import subprocess
import time
from typing import Optional

from pgtk.constants import DEFAULT_HOST, SETTLE_SECONDS, STOP_TIMEOUT_SECONDS
from pgtk.errors import LaunchFailure
from pgtk.errors_catalog import actionable_error
from pgtk.models import RunningInstance
from pgtk.services.command_runner import resolve_binary


class InstanceLauncher:
    """Spawns ``postgres`` against an initialized directory.

    Each returned instance carries its own teardown closure. It is only run
    when the owner calls ``stop()`` (directly or through an exit stack); a
    SIGKILL'd owner leaves the server behind.
    """

    PROBE_INTERVAL_SECONDS = 0.1

    def __init__(
        self,
        logger,
        console,
        bin_dir: Optional[str] = None,
        host: str = DEFAULT_HOST,
        settle_seconds: float = SETTLE_SECONDS,
        quiet: bool = False,
        subprocess_module=subprocess,
    ):
        self.logger = logger
        self.console = console
        self.bin_dir = bin_dir
        self.host = host
        self.settle_seconds = settle_seconds
        self.quiet = quiet
        self.subprocess = subprocess_module

    def build_command(self, directory: str, port: int):
        return [
            resolve_binary("postgres", self.bin_dir),
            "-k",
            directory,
            "-D",
            directory,
            f"--port={port}",
        ]

    def launch(self, directory: str, port: int) -> RunningInstance:
        cmd = self.build_command(directory, port)
        self.logger.debug("Spawning: %s", " ".join(cmd))
        output = self.subprocess.DEVNULL if self.quiet else None

        try:
            process = self.subprocess.Popen(
                cmd,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchFailure(f"{actionable_error('launch_failed', port=port)}\n{exc}") from exc

        instance = RunningInstance(
            pid=process.pid,
            port=port,
            directory=directory,
            teardown=self._teardown(process),
        )
        self.logger.info("PostgreSQL spawned in PID %s on port %s", process.pid, port)

        try:
            self._settle(process, port)
        except LaunchFailure:
            instance.stop()
            raise
        return instance

    def _teardown(self, process):
        def stop():
            try:
                process.terminate()
                process.wait(timeout=STOP_TIMEOUT_SECONDS)
            except self.subprocess.TimeoutExpired:
                self.logger.warning(
                    "PostgreSQL in PID %s ignored SIGTERM, killing it", process.pid
                )
                process.kill()
                process.wait()
            except OSError as exc:
                self.logger.debug("Signalling PID %s failed: %s", process.pid, exc)
            self.console.print(f"PostgreSQL killed in PID {process.pid}")
            self.logger.info("PostgreSQL killed in PID %s", process.pid)

        return stop

    def _settle(self, process, port: int):
        """Waits up to ``settle_seconds`` for the port to accept TCP connections."""
        deadline = time.monotonic() + self.settle_seconds
        while True:
            returncode = process.poll()
            if returncode is not None:
                raise LaunchFailure(
                    f"{actionable_error('launch_failed', port=port)}\n"
                    f"postgres exited with code {returncode} (PID {process.pid})."
                )
            if self._accepts_connections(port):
                self.logger.debug("Port %s accepts connections", port)
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.debug("Settling window elapsed for port %s", port)
                return
            time.sleep(min(self.PROBE_INTERVAL_SECONDS, remaining))

    def _accepts_connections(self, port: int) -> bool:
        try:
            with socket.create_connection((self.host, port), timeout=self.PROBE_INTERVAL_SECONDS):
                return True
        except OSError:
            return False
