import sys
from dataclasses import replace
from pathlib import Path

import click

from ..config import HarnessSettings, check_report_path, load_config
from ..errors import ConfigError, HarnessEnvironmentError
from ..runner.executor import BenchmarkOrchestrator
from ..runner.reporter import format_entry
from ..runner.results import RunResult
from ..schemas import BenchmarkConfig


def _select(
    config: BenchmarkConfig, programs: tuple[str, ...], impls: tuple[str, ...]
) -> BenchmarkConfig:
    """Narrow the config to the requested programs and implementations."""
    if programs:
        known = {p.name for p in config.programs}
        missing = [name for name in programs if name not in known]
        if missing:
            raise ConfigError(f"Unknown program(s): {', '.join(missing)}")
        config = replace(config, programs=tuple(p for p in config.programs if p.name in programs))
    if impls:
        known = {i.name for i in config.implementations}
        missing = [name for name in impls if name not in known]
        if missing:
            raise ConfigError(f"Unknown implementation(s): {', '.join(missing)}")
        config = replace(
            config,
            implementations=tuple(i for i in config.implementations if i.name in impls),
        )
    return config


@click.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-run timeout in seconds (default: config timeout_seconds or VMBENCH_TIMEOUT_SECONDS)",
)
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Report destination (default: config 'report', relative to the config file)",
)
@click.option(
    "--json",
    "json_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also save machine-readable results (.jsonl + .report.json)",
)
@click.option(
    "--keep-report/--discard-report",
    default=True,
    show_default=True,
    help="Keep the text report after printing it",
)
@click.option(
    "--only-program",
    "only_programs",
    multiple=True,
    help="Run only this program (repeatable)",
)
@click.option(
    "--only-impl",
    "only_impls",
    multiple=True,
    help="Run only this implementation (repeatable)",
)
@click.option(
    "--progress/--no-progress",
    default=True,
    show_default=True,
    help="Print each result as soon as it is recorded",
)
def main(
    config_path: Path,
    timeout: float | None,
    report_path: Path | None,
    json_path: Path | None,
    keep_report: bool,
    only_programs: tuple[str, ...],
    only_impls: tuple[str, ...],
    progress: bool,
) -> None:
    """Compile every program in CONFIG_PATH and time each implementation on it."""
    try:
        config = load_config(config_path, HarnessSettings.from_env())
        config = _select(config, only_programs, only_impls)
        if timeout is not None:
            if timeout <= 0:
                raise ConfigError(f"--timeout must be positive, got {timeout}")
            config = replace(config, timeout_seconds=timeout)
        if report_path is not None:
            config = replace(config, report_path=report_path.resolve())
            check_report_path(
                config.report_path, base_dir=config.base_dir, work_dir=config.work_dir
            )
    except ConfigError as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)

    click.echo(
        f"Benchmarking {len(config.programs)} programs"
        f" x {len(config.implementations)} implementations"
    )
    click.echo(f"  work dir: {config.work_dir}")
    click.echo(f"  timeout:  {config.timeout_seconds:g}s")

    def _echo_result(entry: RunResult) -> None:
        click.echo(f"  [{entry.program}] {format_entry(entry)}")

    orchestrator = BenchmarkOrchestrator(config, on_result=_echo_result if progress else None)
    try:
        report = orchestrator.run_all()
    except KeyboardInterrupt:
        click.echo("\nInterrupted; transient artifacts removed.", err=True)
        sys.exit(130)
    except HarnessEnvironmentError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("")
    click.echo(orchestrator.report_text or "", nl=False)

    if json_path is not None:
        try:
            saved = orchestrator.reporter.save_json(json_path, orchestrator.metadata)
        except HarnessEnvironmentError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"\nResults saved to {saved}")

    if keep_report:
        click.echo(f"\nReport written to {config.report_path}")
    else:
        config.report_path.unlink(missing_ok=True)

    stats = report.stats()
    click.echo(
        f"\n{stats['ok']} ok, {stats['failed']} failed, {stats['timeout']} timed out, "
        f"{stats['setup_failed']} setup failed, {stats['compile_failed']} compile failed"
    )
