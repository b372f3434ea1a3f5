"""Shared defaults for pgtk."""

DEFAULT_NAME = "pgsql"
DEFAULT_HOST = "localhost"
DEFAULT_DIRECTORY = "target/pgsql"
DEFAULT_YAML_PATH = "target/pgsql-config.yml"
DEFAULT_USER = "test"
DEFAULT_PASSWORD = "test"
DEFAULT_DBNAME = "test"
DEFAULT_CONFIG_FILE = ".pgtk.yml"

# Root key of the published credentials document.
YAML_ROOT_KEY = "pgsql"

SETTLE_SECONDS = 1.0
PROVISION_RETRY_COUNT = 10
PROVISION_RETRY_DELAY_SECONDS = 5.0
STOP_TIMEOUT_SECONDS = 10.0

PASSWORD_FILE_MODE = 0o600
