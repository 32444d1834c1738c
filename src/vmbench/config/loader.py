import logging
import shlex
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigError
from ..paths import (
    DEFAULT_ARTIFACT_SUFFIX,
    DEFAULT_REPORT_NAME,
    DEFAULT_WORK_DIR_NAME,
    resolve_relative,
)
from ..schemas import (
    COMPILER_PLACEHOLDERS,
    RUN_PLACEHOLDERS,
    BenchmarkConfig,
    CompilerSpec,
    Implementation,
    Program,
    RepoSpec,
    check_template,
)
from .settings import DEFAULT_COMPILER_COMMAND, HarnessSettings

logger = logging.getLogger(__name__)


def parse_command(value: Any, where: str) -> tuple[str, ...]:
    """Accept a list of arguments or a shell-like string."""
    if isinstance(value, str):
        try:
            parts = shlex.split(value)
        except ValueError as e:
            raise ConfigError(f"{where}: {e}") from e
    elif isinstance(value, (list, tuple)):
        if not all(isinstance(v, (str, int, float)) for v in value):
            raise ConfigError(f"{where}: command arguments must be strings")
        parts = [str(v) for v in value]
    else:
        raise ConfigError(f"{where}: expected a string or a list, got {type(value).__name__}")
    if not parts:
        raise ConfigError(f"{where}: command is empty")
    return tuple(parts)


def _require_mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: expected a mapping")
    return value


def _require_name(entry: dict[str, Any], where: str) -> str:
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"{where}.name: required non-empty string")
    return name.strip()


def _positive_float(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: expected a number, got {value!r}") from e
    if number <= 0:
        raise ConfigError(f"{key}: must be positive, got {number}")
    return number


def _parse_programs(raw: Any, base_dir: Path) -> tuple[Program, ...]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError("programs: expected a non-empty list")
    programs: list[Program] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        where = f"programs[{i}]"
        entry = _require_mapping(item, where)
        name = _require_name(entry, where)
        if name in seen:
            raise ConfigError(f"{where}.name: duplicate program '{name}'")
        seen.add(name)
        source = entry.get("source")
        if not isinstance(source, str) or not source.strip():
            raise ConfigError(f"{where}.source: required path")
        programs.append(Program(name=name, source=resolve_relative(base_dir, source)))
    return tuple(programs)


def _parse_repo(raw: Any, base_dir: Path, where: str) -> RepoSpec | None:
    if raw is None:
        return None
    entry = _require_mapping(raw, where)
    url = entry.get("url")
    dest = entry.get("dest")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError(f"{where}.url: required string")
    if not isinstance(dest, str) or not dest.strip():
        raise ConfigError(f"{where}.dest: required path")
    ref = entry.get("ref")
    if ref is not None and not isinstance(ref, str):
        raise ConfigError(f"{where}.ref: expected a string")
    return RepoSpec(url=url.strip(), dest=resolve_relative(base_dir, dest), ref=ref)


def _parse_implementation(item: Any, base_dir: Path, where: str) -> Implementation:
    entry = _require_mapping(item, where)
    name = _require_name(entry, where)
    if "command" not in entry:
        raise ConfigError(f"{where}.command: required")
    command = parse_command(entry["command"], f"{where}.command")
    check_template(command, RUN_PLACEHOLDERS, f"{where}.command")

    setup_raw = entry.get("setup") or []
    if isinstance(setup_raw, str):
        setup_raw = [setup_raw]
    if not isinstance(setup_raw, list):
        raise ConfigError(f"{where}.setup: expected a list of commands")
    # Each item is one command: a string or a list of arguments
    setup = tuple(
        parse_command(cmd, f"{where}.setup[{j}]") for j, cmd in enumerate(setup_raw)
    )

    env_raw = entry.get("env") or {}
    env = _require_mapping(env_raw, f"{where}.env")
    cwd_raw = entry.get("cwd")
    cleanup_raw = entry.get("cleanup") or []
    if isinstance(cleanup_raw, str):
        cleanup_raw = [cleanup_raw]
    if not isinstance(cleanup_raw, list):
        raise ConfigError(f"{where}.cleanup: expected a list of paths")

    return Implementation(
        name=name,
        command=command,
        setup=setup,
        repo=_parse_repo(entry.get("repo"), base_dir, f"{where}.repo"),
        env={str(k): str(v) for k, v in env.items()},
        cwd=resolve_relative(base_dir, cwd_raw) if cwd_raw else base_dir,
        cleanup=tuple(resolve_relative(base_dir, str(p)) for p in cleanup_raw),
    )


def _parse_implementations(raw: Any, base_dir: Path) -> tuple[Implementation, ...]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError("implementations: expected a non-empty list")
    implementations: list[Implementation] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        impl = _parse_implementation(item, base_dir, f"implementations[{i}]")
        if impl.name in seen:
            raise ConfigError(f"implementations[{i}].name: duplicate implementation '{impl.name}'")
        seen.add(impl.name)
        implementations.append(impl)
    return tuple(implementations)


def check_report_path(report_path: Path, *, base_dir: Path, work_dir: Path) -> None:
    """Reject report destinations that name a directory.

    The previous report is deleted before every run, so the path must be a file.
    """
    resolved = report_path.resolve()
    if resolved in (base_dir.resolve(), work_dir.resolve()) or report_path.is_dir():
        raise ConfigError(f"report: {report_path} is a directory, expected a file path")


def build_config(
    raw: Any,
    *,
    base_dir: Path,
    settings: HarnessSettings | None = None,
    source_path: Path | None = None,
) -> BenchmarkConfig:
    """Validate a parsed config mapping and resolve every path against base_dir."""
    settings = settings or HarnessSettings()
    data = _require_mapping(raw, "config")

    compiler_raw = _require_mapping(data.get("compiler") or {}, "compiler")
    compiler_command = (
        parse_command(compiler_raw["command"], "compiler.command")
        if "command" in compiler_raw
        else DEFAULT_COMPILER_COMMAND
    )
    check_template(compiler_command, COMPILER_PLACEHOLDERS, "compiler.command")

    if settings.work_dir is not None:
        work_dir = settings.work_dir
    else:
        work_dir = resolve_relative(base_dir, str(data.get("work_dir") or DEFAULT_WORK_DIR_NAME))

    suffix = str(data.get("artifact_suffix") or DEFAULT_ARTIFACT_SUFFIX)
    if not suffix.startswith("."):
        suffix = "." + suffix

    report_path = resolve_relative(base_dir, str(data.get("report") or DEFAULT_REPORT_NAME))
    check_report_path(report_path, base_dir=base_dir, work_dir=work_dir)

    timeout = _positive_float(data, "timeout_seconds", settings.timeout_seconds)
    return BenchmarkConfig(
        base_dir=base_dir,
        work_dir=work_dir,
        report_path=report_path,
        compiler=CompilerSpec(command=compiler_command),
        programs=_parse_programs(data.get("programs"), base_dir),
        implementations=_parse_implementations(data.get("implementations"), base_dir),
        timeout_seconds=timeout,
        compile_timeout_seconds=_positive_float(
            data, "compile_timeout_seconds", settings.compile_timeout_seconds
        ),
        setup_timeout_seconds=_positive_float(
            data, "setup_timeout_seconds", settings.setup_timeout_seconds
        ),
        artifact_suffix=suffix,
        source_path=source_path,
    )


def load_config(path: str | Path, settings: HarnessSettings | None = None) -> BenchmarkConfig:
    """Load a YAML benchmark configuration file.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails validation.
    """
    config_path = Path(path).expanduser().resolve()
    try:
        with config_path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    config = build_config(
        raw, base_dir=config_path.parent, settings=settings, source_path=config_path
    )
    logger.debug(
        "Loaded %s: %d programs, %d implementations",
        config_path,
        len(config.programs),
        len(config.implementations),
    )
    return config
