import glob
import os
import shutil
import stat
import sys

import pytest

from pgtk.models import InstanceConfig

FAKE_INITDB = """#!/bin/sh
while [ $# -gt 0 ]; do
  case "$1" in
    -D) shift; mkdir -p "$1"; echo 16 > "$1/PG_VERSION" ;;
  esac
  shift
done
"""

FAKE_POSTGRES = """#!/bin/sh
exec sleep 60
"""

FAKE_CREATEDB = """#!/bin/sh
exit 0
"""


def write_script(directory, name, content):
    path = os.path.join(str(directory), name)
    with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
        file_obj.write(content)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bin_dir(tmp_path):
    """Stand-ins for initdb, postgres and createdb that need no PostgreSQL install."""
    if sys.platform == "win32":
        pytest.skip("shell script stand-ins need a POSIX shell")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    write_script(bin_dir, "initdb", FAKE_INITDB)
    write_script(bin_dir, "postgres", FAKE_POSTGRES)
    write_script(bin_dir, "createdb", FAKE_CREATEDB)
    return bin_dir


@pytest.fixture
def make_config(tmp_path, fake_bin_dir):
    def factory(**overrides):
        values = {
            "directory": str(tmp_path / "pgsql"),
            "user": "hello",
            "password": "secret",
            "dbname": "test",
            "yaml_path": str(tmp_path / "cfg.yml"),
            "quiet": True,
            "bin_dir": str(fake_bin_dir),
            "settle_seconds": 0.1,
            "retry_delay_seconds": 0.0,
        }
        values.update(overrides)
        return InstanceConfig(**values)

    return factory


@pytest.fixture
def real_pg_bin_dir():
    """Directory of a real PostgreSQL install, or None when it is on PATH."""
    if sys.platform == "win32" or os.geteuid() == 0:
        pytest.skip("initdb refuses to run as root")
    if all(shutil.which(name) for name in ("initdb", "postgres", "createdb")):
        return None
    candidates = sorted(glob.glob("/usr/lib/postgresql/*/bin/initdb"))
    candidates += sorted(glob.glob("/usr/local/opt/postgresql*/bin/initdb"))
    if not candidates:
        pytest.skip("PostgreSQL server binaries are not installed")
    return os.path.dirname(candidates[-1])


def _pid_alive(pid):
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


@pytest.fixture
def pid_alive():
    return _pid_alive
