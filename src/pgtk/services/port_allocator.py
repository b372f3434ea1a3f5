"""Local TCP port allocation for pgtk."""

import socket
import threading
from typing import Set

from pgtk.errors import PortAllocationFailure
from pgtk.errors_catalog import actionable_error


class PortAllocator:
    """Hands out free loopback ports, never the same one twice per allocator.

    The kernel picks the port, so concurrent allocators in other processes
    only collide if a port is grabbed between release of the bound socket and
    the server binding it.
    """

    MIN_PORT = 1024

    def __init__(self, logger, host: str = "127.0.0.1", max_attempts: int = 64):
        self.logger = logger
        self.host = host
        self.max_attempts = max_attempts
        self._lock = threading.Lock()
        self._acquired: Set[int] = set()

    def _ephemeral_port(self) -> int:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((self.host, 0))
            return sock.getsockname()[1]

    def acquire(self) -> int:
        with self._lock:
            for _ in range(self.max_attempts):
                try:
                    port = self._ephemeral_port()
                except OSError as exc:
                    self.logger.debug("Could not bind an ephemeral port: %s", exc)
                    continue
                if port < self.MIN_PORT or port in self._acquired:
                    continue
                self._acquired.add(port)
                self.logger.debug("Acquired port %s", port)
                return port

        raise PortAllocationFailure(actionable_error("no_free_port", attempts=self.max_attempts))

    def release(self, port: int):
        with self._lock:
            self._acquired.discard(port)

    @property
    def acquired(self) -> Set[int]:
        with self._lock:
            return set(self._acquired)
