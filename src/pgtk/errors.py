"""Domain errors for pgtk."""


class PgtkError(RuntimeError):
    """Raised when the instance cannot be brought up safely."""


class CommandError(PgtkError):
    """An external command could not be executed or exited non-zero."""


class ConfigError(PgtkError):
    """The task configuration is missing, malformed or has unknown keys."""


class PortAllocationFailure(PgtkError):
    """No free local port could be found."""


class DirectoryConflict(PgtkError):
    """The data directory already exists and fresh start is disabled."""


class InitFailure(PgtkError):
    """Cluster initialization (initdb) failed."""


class LaunchFailure(PgtkError):
    """The server process could not be spawned or died while settling."""


class ProvisionFailure(PgtkError):
    """Database creation exhausted its retry budget."""


class WriteFailure(PgtkError):
    """The credentials file could not be written."""


class CredentialsError(PgtkError):
    """A published credentials file is missing or malformed."""


class PoolError(PgtkError):
    """The pool was used before it was started."""
