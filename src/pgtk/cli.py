import logging
import os
import time

import click
from rich.logging import RichHandler

from . import constants
from .core import PgsqlTask, console
from .errors import PgtkError
from .models import InstanceConfig
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _hold(task: PgsqlTask, command) -> int:
    if command:
        result = task.command_runner.run(list(command), check=False)
        return result.returncode

    console.print("[dim]Press Ctrl+C to stop the server.[/dim]")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        return 0


@click.command(context_settings={"allow_interspersed_args": False})
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .pgtk.yml if present.",
)
@click.option("--name", required=False, help="Task name used in log messages (default: pgsql).")
@click.option("--dir", "directory", required=False, help="Data directory for the new cluster.")
@click.option(
    "--fresh-start",
    is_flag=True,
    default=None,
    help="Remove the data directory first if it already exists.",
)
@click.option("--user", required=False, help="Superuser name created by initdb.")
@click.option("--password", required=False, help="Superuser password.")
@click.option("--dbname", required=False, help="Database to create.")
@click.option(
    "--port",
    required=False,
    type=int,
    default=None,
    help="Port to bind. A free port is picked when omitted.",
)
@click.option(
    "--yaml",
    "yaml_path",
    required=False,
    type=click.Path(),
    help="Where to write the credentials file (default: target/pgsql-config.yml).",
)
@click.option("--quiet", is_flag=True, default=None, help="Suppress PostgreSQL command output.")
@click.option("--host", required=False, help="Host written to the credentials file.")
@click.option(
    "--bin-dir",
    required=False,
    type=click.Path(),
    help="Directory holding initdb, postgres and createdb. Defaults to PATH lookup.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def main(
    config,
    name,
    directory,
    fresh_start,
    user,
    password,
    dbname,
    port,
    yaml_path,
    quiet,
    host,
    bin_dir,
    verbose,
    log_file,
    command,
):
    """Start a local PostgreSQL server and publish its credentials.

    When COMMAND is given it runs while the server is up and its exit code
    becomes ours; otherwise the server runs until interrupted.
    """
    logger = logging.getLogger("pgtk")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), constants.DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except PgtkError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    name = _resolve_option(name, config_values, "name", default=constants.DEFAULT_NAME)
    directory = _resolve_option(directory, config_values, "dir", default=constants.DEFAULT_DIRECTORY)
    fresh_start = bool(_resolve_option(fresh_start, config_values, "fresh_start", default=False))
    user = _resolve_option(user, config_values, "user", default=constants.DEFAULT_USER)
    password = _resolve_option(password, config_values, "password", default=constants.DEFAULT_PASSWORD)
    dbname = _resolve_option(dbname, config_values, "dbname", default=constants.DEFAULT_DBNAME)
    port = _resolve_option(port, config_values, "port")
    yaml_path = _resolve_option(yaml_path, config_values, "yaml", default=constants.DEFAULT_YAML_PATH)
    quiet = bool(_resolve_option(quiet, config_values, "quiet", default=False))
    host = _resolve_option(host, config_values, "host", default=constants.DEFAULT_HOST)
    bin_dir = _resolve_option(bin_dir, config_values, "bin_dir")
    settle_seconds = config_values.get("settle_seconds", constants.SETTLE_SECONDS)
    retry_count = config_values.get("retry_count", constants.PROVISION_RETRY_COUNT)
    retry_delay_seconds = config_values.get(
        "retry_delay_seconds", constants.PROVISION_RETRY_DELAY_SECONDS
    )

    instance_config = InstanceConfig(
        name=name,
        directory=directory,
        fresh_start=fresh_start,
        user=user,
        password=password,
        dbname=dbname,
        port=port,
        yaml_path=yaml_path,
        quiet=quiet,
        host=host,
        bin_dir=bin_dir or None,
        settle_seconds=settle_seconds,
        retry_count=retry_count,
        retry_delay_seconds=retry_delay_seconds,
    )

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    task = PgsqlTask(instance_config)
    exit_code = task.run()
    if exit_code != 0:
        raise SystemExit(exit_code)

    try:
        exit_code = _hold(task, command)
    except PgtkError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        task.close()

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
