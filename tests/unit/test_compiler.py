import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from vmbench.errors import CompileError
from vmbench.runner.compiler import ArtifactCompiler
from vmbench.runner.process import TimedProcessRunner
from vmbench.schemas import CompilerSpec


@pytest.fixture
def compiler(fake_compiler: list[str]) -> ArtifactCompiler:
    return ArtifactCompiler(CompilerSpec(command=tuple(fake_compiler)), TimedProcessRunner(10.0))


def test_compile_writes_artifact(
    compiler: ArtifactCompiler, write_source: Callable[..., Path], tmp_path: Path
) -> None:
    source = write_source("fib")
    output = tmp_path / "work" / "fib.json"

    compiler.compile("fib", source, output)

    assert output.is_file()
    assert output.stat().st_size > 0


def test_compile_overwrites_existing_artifact(
    compiler: ArtifactCompiler, write_source: Callable[..., Path], tmp_path: Path
) -> None:
    source = write_source("fib", "func main() { return 1 }\n")
    output = tmp_path / "fib.json"
    output.write_text("stale", encoding="utf-8")

    compiler.compile("fib", source, output)

    assert "return 1" in output.read_text(encoding="utf-8")


def test_compile_failure_carries_exit_code_and_stderr(
    compiler: ArtifactCompiler, write_source: Callable[..., Path], tmp_path: Path
) -> None:
    source = write_source("broken", "syntax error\n")

    with pytest.raises(CompileError) as exc_info:
        compiler.compile("broken", source, tmp_path / "broken.json")

    err = exc_info.value
    assert err.program == "broken"
    assert err.exit_code == 1
    assert "unexpected token" in err.stderr
    assert err.reason == "exit code 1: Error: unexpected token on line 1"


def test_zero_exit_without_output_is_a_failure(
    compiler: ArtifactCompiler, write_source: Callable[..., Path], tmp_path: Path
) -> None:
    source = write_source("silent", "no output\n")

    with pytest.raises(CompileError, match="produced no artifact"):
        compiler.compile("silent", source, tmp_path / "silent.json")


def test_missing_source_is_a_failure(compiler: ArtifactCompiler, tmp_path: Path) -> None:
    with pytest.raises(CompileError, match="source file not found") as exc_info:
        compiler.compile("ghost", tmp_path / "ghost.cairo", tmp_path / "ghost.json")

    assert exc_info.value.exit_code is None


def test_missing_compiler_is_a_failure(
    write_source: Callable[..., Path], tmp_path: Path
) -> None:
    spec = CompilerSpec(command=(str(tmp_path / "no-such-compiler"), "{source}", "{output}"))
    compiler = ArtifactCompiler(spec, TimedProcessRunner(10.0))

    with pytest.raises(CompileError, match="failed to start"):
        compiler.compile("fib", write_source("fib"), tmp_path / "fib.json")


def test_compiler_timeout_is_a_failure(
    write_source: Callable[..., Path], tmp_path: Path
) -> None:
    spec = CompilerSpec(command=(sys.executable, "-c", "import time; time.sleep(30)"))
    compiler = ArtifactCompiler(spec, TimedProcessRunner(0.5))

    with pytest.raises(CompileError, match="timed out"):
        compiler.compile("fib", write_source("fib"), tmp_path / "fib.json")
