import sys
from pathlib import Path

import click

from ..config import DEFAULT_COMPILER_COMMAND, HarnessSettings, parse_command
from ..errors import ConfigError
from ..fixtures import regenerate_fixtures
from ..runner.compiler import ArtifactCompiler
from ..runner.process import TimedProcessRunner
from ..schemas import COMPILER_PLACEHOLDERS, CompilerSpec, check_template


@click.command()
@click.argument(
    "source_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where compiled fixtures go (default: SOURCE_DIR)",
)
@click.option("--pattern", default="*.cairo", show_default=True, help="Source file glob")
@click.option(
    "--suffix",
    "artifact_suffix",
    default=".json",
    show_default=True,
    help="Extension of compiled fixtures",
)
@click.option(
    "--compiler",
    "compiler_command",
    default=" ".join(DEFAULT_COMPILER_COMMAND),
    show_default=True,
    help="Compiler command template with {source} and {output}",
)
def main(
    source_dir: Path,
    output_dir: Path | None,
    pattern: str,
    artifact_suffix: str,
    compiler_command: str,
) -> None:
    """Recompile the test programs in SOURCE_DIR into bytecode fixtures."""
    try:
        command = parse_command(compiler_command, "--compiler")
        check_template(command, COMPILER_PLACEHOLDERS, "--compiler")
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    suffix = artifact_suffix if artifact_suffix.startswith(".") else f".{artifact_suffix}"
    settings = HarnessSettings.from_env()
    compiler = ArtifactCompiler(
        CompilerSpec(command=command), TimedProcessRunner(settings.compile_timeout_seconds)
    )
    summary = regenerate_fixtures(
        compiler,
        source_dir,
        output_dir=output_dir,
        pattern=pattern,
        artifact_suffix=suffix,
    )

    click.echo(f"Compiled {len(summary.compiled)} fixtures")
    for error in summary.failed:
        click.echo(f"  ✗ {error}", err=True)
    if not summary.ok:
        sys.exit(1)
