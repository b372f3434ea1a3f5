import atexit
import logging
import signal
import subprocess
import threading
from contextlib import ExitStack
from typing import List, Optional

from rich.console import Console

from .errors import PgtkError
from .models import InstanceConfig, PublishedCredentials, RunningInstance
from .services.command_runner import CommandRunner
from .services.filesystem import FileSystemService
from .services.initializer import InstanceInitializer
from .services.launcher import InstanceLauncher
from .services.port_allocator import PortAllocator
from .services.provisioner import Provisioner
from .services.publisher import CredentialPublisher

console = Console()
logger = logging.getLogger("pgtk")

# Shared so that sequential tasks in one process never get the same port.
port_allocator = PortAllocator(logger=logger)


def _exit_on_sigterm(signum, _frame):
    raise SystemExit(128 + signum)


def install_sigterm_handler():
    """Turns SIGTERM into SystemExit so exit hooks and finally blocks run.

    Only installed from the main thread and only over the default action.
    """
    if threading.current_thread() is not threading.main_thread():
        return
    if signal.getsignal(signal.SIGTERM) is signal.SIG_DFL:
        signal.signal(signal.SIGTERM, _exit_on_sigterm)


class PgsqlTask:
    """Brings up a throwaway PostgreSQL server and publishes how to reach it.

    Servers started by a task stay alive until ``close()`` is called, the
    task is used as a context manager and leaves its block, or the
    interpreter exits normally or on SIGTERM.
    """

    def __init__(self, config: InstanceConfig, allocator: Optional[PortAllocator] = None):
        self.config = config
        self.port_allocator = allocator or port_allocator
        self.instances: List[RunningInstance] = []
        self.credentials: Optional[PublishedCredentials] = None
        self._exit_stack = ExitStack()
        self._exit_hook_registered = False

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.command_runner = CommandRunner(logger=logger)
        self.initializer = InstanceInitializer(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
            bin_dir=config.bin_dir,
        )
        self.launcher = InstanceLauncher(
            logger=logger,
            console=console,
            bin_dir=config.bin_dir,
            host=config.host,
            settle_seconds=config.settle_seconds,
            quiet=config.quiet,
        )
        self.provisioner = Provisioner(
            logger=logger,
            console=console,
            bin_dir=config.bin_dir,
            retry_count=config.retry_count,
            retry_delay_seconds=config.retry_delay_seconds,
        )
        self.publisher = CredentialPublisher(logger=logger)

    @property
    def name(self) -> str:
        return self.config.name

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output)

    def _track(self, instance: RunningInstance, allocated: bool):
        self.instances.append(instance)
        if allocated:
            self._exit_stack.callback(self.port_allocator.release, instance.port)
        self._exit_stack.callback(instance.stop)
        if not self._exit_hook_registered:
            atexit.register(self.close)
            install_sigterm_handler()
            self._exit_hook_registered = True

    def start(self) -> RunningInstance:
        config = self.config
        logger.info("[%s] Starting a local PostgreSQL server...", self.name)

        # A failed run must not leave the previous run's credentials behind.
        self.publisher.discard(config.yaml_path)

        home = self.initializer.initialize(
            directory=config.directory,
            fresh_start=config.fresh_start,
            user=config.user,
            password=config.password,
            run_cmd=self._run_cmd,
            quiet=config.quiet,
        )
        allocated = not self.config.port
        port = self.port_allocator.acquire() if allocated else self.config.port
        try:
            instance = self.launcher.launch(home, port)
        except BaseException:
            if allocated:
                self.port_allocator.release(port)
            raise

        try:
            self.provisioner.provision(
                host=config.host,
                port=port,
                user=config.user,
                dbname=config.dbname,
                run_cmd=self._run_cmd,
                quiet=config.quiet,
            )
            credentials = PublishedCredentials(
                host=config.host,
                port=port,
                dbname=config.dbname,
                user=config.user,
                password=config.password,
            )
            self.publisher.publish(config.yaml_path, credentials)
        except BaseException:
            instance.stop()
            if allocated:
                self.port_allocator.release(port)
            raise

        self._track(instance, allocated)
        self.credentials = credentials
        console.print(f"[bold green]PostgreSQL is running in PID {instance.pid}[/bold green]")
        logger.info("PostgreSQL is running in PID %s on port %s", instance.pid, port)
        return instance

    def run(self) -> int:
        try:
            self.start()
            return 0
        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except PgtkError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1

    def close(self):
        self._exit_stack.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
