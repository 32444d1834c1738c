import logging
from pathlib import Path

from ..errors import CompileError
from ..schemas import CompilerSpec
from .process import TimedProcessRunner

logger = logging.getLogger(__name__)


class ArtifactCompiler:
    """Turns a source program into a bytecode artifact with an external compiler."""

    def __init__(self, spec: CompilerSpec, runner: TimedProcessRunner) -> None:
        self.spec = spec
        self.runner = runner

    def compile(self, program: str, source: Path, output: Path) -> None:
        """Compile ``source`` into ``output``, overwriting any previous file.

        Raises:
            CompileError: If the compiler cannot run, exits non-zero, times out,
                or leaves no non-empty file at ``output``.
        """
        if not source.is_file():
            raise CompileError(program, None, f"source file not found: {source}")

        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CompileError(program, None, f"cannot create {output.parent}: {e}") from e

        command = self.spec.build_command(source=source, output=output)
        logger.info("Compiling %s -> %s", source.name, output)
        outcome = self.runner.run(command)

        if outcome.error is not None:
            raise CompileError(program, None, outcome.error)
        if outcome.timed_out:
            raise CompileError(
                program, None, f"compiler timed out after {outcome.elapsed:.1f}s"
            )
        if outcome.exit_code != 0:
            raise CompileError(program, outcome.exit_code, outcome.stderr or outcome.stdout)
        if not output.is_file() or output.stat().st_size == 0:
            raise CompileError(program, 0, f"compiler produced no artifact at {output}")

        logger.debug("Compiled %s in %.3fs", program, outcome.elapsed)
