"""Actionable error catalog for pgtk."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "directory_conflict": {
        "what": "Directory/file {path} is present.",
        "next": "Choose a clean directory or set `fresh_start: true` (`--fresh-start`).",
    },
    "fresh_start_failed": {
        "what": "Could not remove {path} for a fresh start.",
        "next": "Check permissions on {path} or remove it manually.",
    },
    "binary_not_found": {
        "what": "Required command not found: {command}.",
        "next": "Install the PostgreSQL server binaries or point `--bin-dir` at them.",
    },
    "init_failed": {
        "what": "initdb failed for {path}.",
        "next": "Check the output above and that the directory's parent is writable.",
    },
    "launch_failed": {
        "what": "PostgreSQL could not be started on port {port}.",
        "next": "Run without `--quiet` to see the server output.",
    },
    "provision_failed": {
        "what": "Database {dbname} could not be created after {attempts} attempts.",
        "next": "Make sure the server is running on port {port} and user {user} exists.",
    },
    "write_failed": {
        "what": "Could not write credentials to {path}.",
        "next": "Check that the target directory is writable.",
    },
    "no_free_port": {
        "what": "No free local port found after {attempts} attempts.",
        "next": "Pass an explicit `--port` or free some local ports.",
    },
}


def actionable_error(code: str, **kwargs: object) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
