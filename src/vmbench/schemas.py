from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError

# Placeholders understood by each kind of command template
COMPILER_PLACEHOLDERS = frozenset({"source", "output"})
RUN_PLACEHOLDERS = frozenset({"artifact", "program", "work_dir"})


class _Placeholders(dict[str, str]):
    def __missing__(self, key: str) -> str:
        raise ConfigError(f"Unknown placeholder '{{{key}}}' in command template")


def expand_template(template: tuple[str, ...], **values: Any) -> list[str]:
    """Substitute ``{name}`` placeholders in every argument of a command template."""
    mapping = _Placeholders({k: str(v) for k, v in values.items()})
    return [arg.format_map(mapping) for arg in template]


def check_template(template: tuple[str, ...], allowed: frozenset[str], where: str) -> None:
    if not template:
        raise ConfigError(f"{where}: command is empty")
    try:
        expand_template(template, **{name: "" for name in allowed})
    except (ConfigError, ValueError, IndexError, AttributeError) as e:
        raise ConfigError(f"{where}: {e}") from e


@dataclass
class Program:
    """A source program to benchmark.

    ``artifact`` stays None until the program has been compiled successfully.
    """

    name: str
    source: Path
    artifact: Path | None = None

    def artifact_path(self, work_dir: Path, suffix: str) -> Path:
        return work_dir / f"{self.name}{suffix}"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "source": str(self.source)}


@dataclass(frozen=True)
class RepoSpec:
    """Git checkout performed before an implementation's setup commands."""

    url: str
    dest: Path
    ref: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "dest": str(self.dest), "ref": self.ref}


@dataclass(frozen=True)
class Implementation:
    name: str
    command: tuple[str, ...]
    setup: tuple[tuple[str, ...], ...] = ()
    repo: RepoSpec | None = None
    env: dict[str, str] = field(default_factory=dict, hash=False)
    cwd: Path | None = None
    cleanup: tuple[Path, ...] = ()

    @property
    def executable(self) -> str:
        return self.command[0]

    def build_command(self, *, artifact: Path, program: str, work_dir: Path) -> list[str]:
        return expand_template(self.command, artifact=artifact, program=program, work_dir=work_dir)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "command": list(self.command),
            "setup": [list(cmd) for cmd in self.setup],
            "repo": self.repo.to_dict() if self.repo else None,
            "env": dict(self.env),
            "cwd": str(self.cwd) if self.cwd else None,
            "cleanup": [str(p) for p in self.cleanup],
        }


@dataclass(frozen=True)
class CompilerSpec:
    command: tuple[str, ...]

    def build_command(self, *, source: Path, output: Path) -> list[str]:
        return expand_template(self.command, source=source, output=output)


@dataclass(frozen=True)
class BenchmarkConfig:
    """Everything a run needs, with all paths already resolved."""

    base_dir: Path
    work_dir: Path
    report_path: Path
    compiler: CompilerSpec
    programs: tuple[Program, ...]
    implementations: tuple[Implementation, ...]
    timeout_seconds: float
    compile_timeout_seconds: float
    setup_timeout_seconds: float
    artifact_suffix: str = ".json"
    source_path: Path | None = None

    def transient_paths(self) -> list[Path]:
        """Compiled artifacts and implementation build output, in a stable order."""
        paths = [p.artifact_path(self.work_dir, self.artifact_suffix) for p in self.programs]
        for impl in self.implementations:
            paths.extend(impl.cleanup)
        return paths

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_dir": str(self.base_dir),
            "work_dir": str(self.work_dir),
            "report_path": str(self.report_path),
            "compiler": list(self.compiler.command),
            "programs": [p.to_dict() for p in self.programs],
            "implementations": [i.to_dict() for i in self.implementations],
            "timeout_seconds": self.timeout_seconds,
            "compile_timeout_seconds": self.compile_timeout_seconds,
            "setup_timeout_seconds": self.setup_timeout_seconds,
            "artifact_suffix": self.artifact_suffix,
        }
