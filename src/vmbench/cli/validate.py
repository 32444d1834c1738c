import sys
from pathlib import Path

import click

from ..config import HarnessSettings, load_config
from ..errors import ConfigError


@click.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def main(config_path: Path) -> None:
    """Validate CONFIG_PATH and print the planned benchmark matrix."""
    try:
        config = load_config(config_path, HarnessSettings.from_env())
    except ConfigError as e:
        click.echo(f"Invalid config: {e}", err=True)
        sys.exit(1)

    click.echo(f"Config OK: {config_path}")
    click.echo(f"  compiler: {' '.join(config.compiler.command)}")
    click.echo(f"  work dir: {config.work_dir}")
    click.echo(f"  report:   {config.report_path}")
    click.echo(f"  timeout:  {config.timeout_seconds:g}s")

    click.echo("\nPrograms:")
    for program in config.programs:
        missing = "" if program.source.is_file() else "  (source missing)"
        click.echo(f"  - {program.name}: {program.source}{missing}")

    click.echo("\nImplementations:")
    for impl in config.implementations:
        click.echo(f"  - {impl.name}: {' '.join(impl.command)}")
        if impl.repo is not None:
            click.echo(f"      clone: {impl.repo.url} -> {impl.repo.dest}")
        for command in impl.setup:
            click.echo(f"      setup: {' '.join(command)}")

    runs = len(config.programs) * len(config.implementations)
    click.echo(f"\n{runs} runs planned")
