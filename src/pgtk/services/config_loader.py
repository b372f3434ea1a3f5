"""Configuration loader for pgtk."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pgtk.errors import ConfigError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults.

    Values are checked against the type each key expects, so a bad entry is
    reported against its key rather than surfacing later as a crash.
    """

    KEY_TYPES = {
        "name": str,
        "dir": str,
        "fresh_start": bool,
        "user": str,
        "password": str,
        "dbname": str,
        "port": int,
        "yaml": str,
        "quiet": bool,
        "host": str,
        "bin_dir": str,
        "settle_seconds": float,
        "retry_count": int,
        "retry_delay_seconds": float,
        "verbose": bool,
        "log_file": str,
    }
    SUPPORTED_KEYS = set(KEY_TYPES)
    OPTIONAL_KEYS = {"port", "bin_dir", "log_file"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigError(f"Unknown configuration keys: {unknown_list}")

        return {key: self._coerce(key, value) for key, value in parsed.items()}

    def _coerce(self, key: str, value: Any) -> Any:
        expected = self.KEY_TYPES[key]
        if value is None and key in self.OPTIONAL_KEYS:
            return None

        invalid = ConfigError(
            f"Invalid value for '{key}': expected {expected.__name__}, got {value!r}."
        )
        if expected is bool:
            if not isinstance(value, bool):
                raise invalid
            return value

        # YAML booleans are ints in Python; they never stand in for other types.
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise invalid
        if expected is str:
            return str(value)
        if expected is int and isinstance(value, float) and not value.is_integer():
            raise invalid

        try:
            coerced = expected(value)
        except ValueError:
            raise invalid from None

        if coerced < 0 or (key == "port" and not 0 < coerced < 65536):
            raise ConfigError(f"Invalid value for '{key}': {value!r} is out of range.")
        return coerced
