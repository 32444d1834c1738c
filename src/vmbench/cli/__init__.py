"""CLI entry points for vmbench.

Commands:
    - run: Compile programs and time every implementation against them
    - fixtures: Regenerate compiled test fixtures
    - validate: Check a benchmark config and print the planned runs
"""

import os
from pathlib import Path

import click
from dotenv import load_dotenv

from ..config import LOG_LEVEL
from ..config.compat import env_bool
from ..log import setup_logging
from .fixtures import main as fixtures_command
from .run import main as run_command
from .validate import main as validate_command


def _load_env() -> None:
    dotenv_path = os.getenv("VMBENCH_DOTENV_PATH", "").strip()
    if not dotenv_path:
        load_dotenv()
        return
    path = Path(dotenv_path).expanduser()
    if path.exists():
        load_dotenv(path)
    else:
        click.echo(f"Warning: VMBENCH_DOTENV_PATH does not exist: {dotenv_path}", err=True)
        load_dotenv()  # Fallback to default search


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-file/--no-log-file",
    default=None,
    help="Also write logs to the vmbench state dir (default: VMBENCH_LOG_FILE)",
)
@click.version_option(package_name="vmbench")
def cli(verbose: bool, log_file: bool | None) -> None:
    """Benchmark bytecode VM implementations against each other."""
    _load_env()
    level = "DEBUG" if verbose else os.getenv("VMBENCH_LOG_LEVEL", LOG_LEVEL)
    if log_file is None:
        log_file = env_bool("VMBENCH_LOG_FILE", default=False)
    setup_logging(level, log_file=log_file)


cli.add_command(run_command, name="run")
cli.add_command(fixtures_command, name="fixtures")
cli.add_command(validate_command, name="validate")

__all__ = ["cli"]
