"""Credentials file publishing for pgtk."""

import os

import yaml

from pgtk.constants import YAML_ROOT_KEY
from pgtk.errors import CredentialsError, WriteFailure
from pgtk.errors_catalog import actionable_error
from pgtk.models import PublishedCredentials


class CredentialPublisher:
    """Writes and reads the YAML hand-off file consumed by other tooling."""

    def __init__(self, logger, root_key: str = YAML_ROOT_KEY):
        self.logger = logger
        self.root_key = root_key

    def publish(self, path: str, credentials: PublishedCredentials) -> str:
        target = os.path.abspath(os.path.expanduser(path))
        document = credentials.as_document(self.root_key)

        try:
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            with open(target, "w", encoding="utf-8", newline="\n") as file_obj:
                yaml.safe_dump(
                    document,
                    file_obj,
                    allow_unicode=True,
                    default_flow_style=False,
                    sort_keys=False,
                )
        except (OSError, yaml.YAMLError) as exc:
            raise WriteFailure(f"{actionable_error('write_failed', path=target)}\n{exc}") from exc

        self.logger.info("Credentials published to %s", target)
        return target

    def read(self, path: str) -> PublishedCredentials:
        try:
            with open(os.path.expanduser(path), "r", encoding="utf-8") as file_obj:
                document = yaml.safe_load(file_obj)
        except (OSError, yaml.YAMLError) as exc:
            raise CredentialsError(f"Could not read credentials file '{path}': {exc}") from exc

        if not isinstance(document, dict) or not isinstance(document.get(self.root_key), dict):
            raise CredentialsError(
                f"Credentials file '{path}' must contain a '{self.root_key}' mapping."
            )

        try:
            return PublishedCredentials.from_document(document, self.root_key)
        except (KeyError, TypeError, ValueError) as exc:
            raise CredentialsError(f"Credentials file '{path}' is incomplete: {exc}") from exc

    def discard(self, path: str):
        target = os.path.abspath(os.path.expanduser(path))
        try:
            os.remove(target)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise WriteFailure(f"{actionable_error('write_failed', path=target)}\n{exc}") from exc
        self.logger.debug("Removed stale credentials file %s", target)
