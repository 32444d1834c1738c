import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..errors import CompileError, HarnessEnvironmentError, SetupError
from ..paths import WORK_DIR_MARKER
from ..schemas import BenchmarkConfig, Implementation, Program
from .compiler import ArtifactCompiler
from .metadata import build_run_metadata
from .process import TimedProcessRunner
from .registry import ImplementationRegistry
from .reporter import ResultReporter
from .results import Report, RunResult

logger = logging.getLogger(__name__)


class BenchmarkOrchestrator:
    """Compiles each program once and runs every implementation against it.

    Everything runs strictly one subprocess at a time, in declaration order, so
    implementations never compete for CPU while being timed. Per-program and
    per-implementation failures become report entries; only a
    HarnessEnvironmentError aborts the run.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        runner: TimedProcessRunner | None = None,
        compiler: ArtifactCompiler | None = None,
        registry: ImplementationRegistry | None = None,
        reporter: ResultReporter | None = None,
        on_result: Callable[[RunResult], None] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or TimedProcessRunner(config.timeout_seconds)
        self.compiler = compiler or ArtifactCompiler(
            config.compiler, TimedProcessRunner(config.compile_timeout_seconds)
        )
        self.registry = registry or ImplementationRegistry(
            config.implementations,
            TimedProcessRunner(config.setup_timeout_seconds),
            setup_timeout=config.setup_timeout_seconds,
        )
        self.reporter = reporter or ResultReporter()
        self.on_result = on_result
        self.report_text: str | None = None
        self.metadata: dict[str, Any] | None = None

    def run_all(self, programs: Sequence[Program] | None = None) -> Report:
        """Run the whole benchmark and flush the report.

        Raises:
            HarnessEnvironmentError: If the work dir, cleanup, or report write fails.
            KeyboardInterrupt: Re-raised after the in-flight process is killed and
                transient artifacts are removed.
        """
        selected = list(self.config.programs if programs is None else programs)
        declared = {p.name for p in self.config.programs}
        unknown = [p.name for p in selected if p.name not in declared]
        if unknown:
            raise ValueError(f"Programs not declared in config: {', '.join(unknown)}")
        started_at = datetime.now(UTC)
        wall_start = time.perf_counter()

        logger.info("Removing stale artifacts")
        self.reporter.cleanup(self._transient_paths())
        self._remove_stale_report()

        try:
            self._ensure_work_dir()
            for index, program in enumerate(selected, start=1):
                logger.info("[%d/%d] %s", index, len(selected), program.name)
                self._run_program(program)
            self.report_text = self.reporter.flush(self.config.report_path)
        except BaseException:
            self._cleanup_best_effort()
            raise

        logger.info("Removing transient artifacts")
        self._final_cleanup()

        self.metadata = build_run_metadata(
            config=self.config,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            duration_s=time.perf_counter() - wall_start,
        )
        return self.reporter.report

    def _transient_paths(self) -> list[Path]:
        paths = self.config.transient_paths()
        work_dir = self.config.work_dir
        if (work_dir / WORK_DIR_MARKER).is_file():
            # Artifacts left in our own work dir by a run that never finished cleanup
            leftovers = sorted(work_dir.glob(f"*{self.config.artifact_suffix}"))
            paths.extend(p for p in leftovers if p not in paths)
        return paths

    def _remove_stale_report(self) -> None:
        report_path = self.config.report_path
        try:
            report_path.unlink(missing_ok=True)
        except OSError as e:
            raise HarnessEnvironmentError(
                f"Cannot remove previous report {report_path}: {e}"
            ) from e

    def _ensure_work_dir(self) -> None:
        work_dir = self.config.work_dir
        created = not work_dir.exists()
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
            if created:
                # Only a work dir we created is ever swept for leftovers
                (work_dir / WORK_DIR_MARKER).touch()
        except OSError as e:
            raise HarnessEnvironmentError(f"Cannot create work dir {work_dir}: {e}") from e

    def _record(self, entry: RunResult) -> None:
        self.reporter.record(entry)
        if self.on_result is not None:
            self.on_result(entry)

    def _run_program(self, program: Program) -> None:
        artifact = program.artifact_path(self.config.work_dir, self.config.artifact_suffix)
        try:
            self.compiler.compile(program.name, program.source, artifact)
        except CompileError as e:
            logger.warning("%s", e)
            self._record(RunResult.compile_failed(program.name, e.reason))
            return
        program.artifact = artifact

        for impl in self.registry:
            self._run_implementation(program, impl, artifact)

    def _run_implementation(self, program: Program, impl: Implementation, artifact: Path) -> None:
        try:
            self.registry.prepare(impl)
        except SetupError as e:
            self._record(RunResult.setup_failed(program.name, impl.name, e.reason))
            return

        command = impl.build_command(
            artifact=artifact, program=program.name, work_dir=self.config.work_dir
        )
        outcome = self.runner.run(
            command, timeout=self.config.timeout_seconds, env=impl.env, cwd=impl.cwd
        )
        self._record(RunResult.from_outcome(program.name, impl.name, outcome))

    def _final_cleanup(self) -> None:
        for program in self.config.programs:
            program.artifact = None
        paths = self._transient_paths()
        marker = self.config.work_dir / WORK_DIR_MARKER
        owned = marker.is_file()
        if owned:
            paths.append(marker)
        self.reporter.cleanup(paths)
        if owned:
            self._remove_empty_work_dir()

    def _cleanup_best_effort(self) -> None:
        try:
            self._final_cleanup()
        except (HarnessEnvironmentError, OSError) as e:
            logger.error("Cleanup after aborted run failed: %s", e)

    def _remove_empty_work_dir(self) -> None:
        work_dir = self.config.work_dir
        if work_dir.is_dir() and not any(work_dir.iterdir()):
            work_dir.rmdir()
