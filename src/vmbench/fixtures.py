import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import CompileError
from .runner.compiler import ArtifactCompiler
from .runner.reporter import remove_path

logger = logging.getLogger(__name__)


@dataclass
class FixtureSummary:
    compiled: list[Path] = field(default_factory=list)
    failed: list[CompileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def regenerate_fixtures(
    compiler: ArtifactCompiler,
    source_dir: Path,
    *,
    output_dir: Path | None = None,
    pattern: str = "*.cairo",
    artifact_suffix: str = ".json",
) -> FixtureSummary:
    """Recompile every test program in ``source_dir`` into bytecode fixtures.

    Old artifacts in the output directory are removed first. One failing program
    does not stop the batch.
    """
    out_dir = output_dir or source_dir
    for stale in sorted(out_dir.glob(f"*{artifact_suffix}")):
        remove_path(stale)

    summary = FixtureSummary()
    for source in sorted(p for p in source_dir.glob(pattern) if p.is_file()):
        output = out_dir / f"{source.stem}{artifact_suffix}"
        try:
            compiler.compile(source.stem, source, output)
        except CompileError as e:
            logger.warning("%s", e)
            summary.failed.append(e)
            continue
        summary.compiled.append(output)

    logger.info(
        "Fixtures: %d compiled, %d failed in %s",
        len(summary.compiled),
        len(summary.failed),
        out_dir,
    )
    return summary
