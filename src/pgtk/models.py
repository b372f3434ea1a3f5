"""Shared domain models for pgtk."""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote_plus

from pgtk.constants import (
    DEFAULT_HOST,
    DEFAULT_NAME,
    PROVISION_RETRY_COUNT,
    PROVISION_RETRY_DELAY_SECONDS,
    SETTLE_SECONDS,
)


@dataclass(frozen=True)
class InstanceConfig:
    """Everything one task invocation needs, fixed for the whole run."""

    directory: str
    user: str
    password: str
    dbname: str
    yaml_path: str
    name: str = DEFAULT_NAME
    fresh_start: bool = False
    port: Optional[int] = None
    quiet: bool = False
    host: str = DEFAULT_HOST
    bin_dir: Optional[str] = None
    settle_seconds: float = SETTLE_SECONDS
    retry_count: int = PROVISION_RETRY_COUNT
    retry_delay_seconds: float = PROVISION_RETRY_DELAY_SECONDS


@dataclass
class RunningInstance:
    """A spawned server process that owns its own teardown."""

    pid: int
    port: int
    directory: str
    teardown: Callable[[], None] = field(repr=False)
    _stopped: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self):
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self.teardown()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


@dataclass(frozen=True)
class PublishedCredentials:
    """Connection parameters handed to downstream tooling."""

    host: str
    port: int
    dbname: str
    user: str
    password: str

    @property
    def url(self) -> str:
        return (
            f"jdbc:postgresql://{self.host}:{self.port}/{quote_plus(self.dbname)}"
            f"?user={quote_plus(self.user)}&password={quote_plus(self.password)}"
        )

    def as_document(self, root_key: str) -> Dict[str, Dict[str, Any]]:
        return {
            root_key: {
                "host": self.host,
                "port": self.port,
                "dbname": self.dbname,
                "user": self.user,
                "password": self.password,
                "url": self.url,
            }
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any], root_key: str) -> "PublishedCredentials":
        section = document[root_key]
        return cls(
            host=str(section["host"]),
            port=int(section["port"]),
            dbname=str(section["dbname"]),
            user=str(section["user"]),
            password=str(section["password"]),
        )


@dataclass(frozen=True)
class ProvisionAttempt:
    """Outcome of a single createdb call."""

    number: int
    returncode: int
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0
