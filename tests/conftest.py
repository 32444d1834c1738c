import sys
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from vmbench.config import HarnessSettings, build_config
from vmbench.schemas import BenchmarkConfig

PYTHON = sys.executable

_FAKE_COMPILER = textwrap.dedent(
    """
    import json
    import sys

    source, flag, output = sys.argv[1:4]
    assert flag == "--output", flag
    text = open(source, encoding="utf-8").read()
    if "syntax error" in text:
        sys.stderr.write("Error: unexpected token on line 1\\n")
        sys.exit(1)
    if "no output" in text:
        sys.exit(0)
    with open(output, "w", encoding="utf-8") as f:
        json.dump({"source": text}, f)
    """
)

_FAKE_VM = textwrap.dedent(
    """
    import argparse
    import json
    import sys
    import time

    parser = argparse.ArgumentParser()
    parser.add_argument("--program", required=True)
    parser.add_argument("--sleep", type=float, default=0.0)
    parser.add_argument("--exit", dest="exit_code", type=int, default=0)
    args = parser.parse_args()

    with open(args.program, encoding="utf-8") as f:
        json.load(f)
    time.sleep(args.sleep)
    print("ran", args.program)
    if args.exit_code:
        sys.stderr.write("vm crashed\\n")
    sys.exit(args.exit_code)
    """
)


@pytest.fixture
def fake_compiler(tmp_path: Path) -> list[str]:
    script = tmp_path / "tools" / "fake_compiler.py"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(_FAKE_COMPILER, encoding="utf-8")
    return [PYTHON, str(script), "{source}", "--output", "{output}"]


@pytest.fixture
def fake_vm(tmp_path: Path) -> Callable[..., list[str]]:
    script = tmp_path / "tools" / "fake_vm.py"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(_FAKE_VM, encoding="utf-8")

    def _command(*, sleep: float = 0.0, exit_code: int = 0) -> list[str]:
        cmd = [PYTHON, str(script), "--program", "{artifact}"]
        if sleep:
            cmd.extend(["--sleep", str(sleep)])
        if exit_code:
            cmd.extend(["--exit", str(exit_code)])
        return cmd

    return _command


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str = "func main() {}\n") -> Path:
        path = tmp_path / "programs" / f"{name}.cairo"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings() -> HarnessSettings:
    return HarnessSettings(
        timeout_seconds=10.0, compile_timeout_seconds=10.0, setup_timeout_seconds=10.0
    )


@pytest.fixture
def make_config(
    tmp_path: Path, fake_compiler: list[str], settings: HarnessSettings
) -> Callable[..., BenchmarkConfig]:
    """Build a validated config rooted at tmp_path from program/implementation entries."""

    def _make(
        programs: list[dict[str, Any]],
        implementations: list[dict[str, Any]],
        **extra: Any,
    ) -> BenchmarkConfig:
        raw: dict[str, Any] = {
            "compiler": {"command": fake_compiler},
            "programs": programs,
            "implementations": implementations,
            **extra,
        }
        return build_config(raw, base_dir=tmp_path, settings=settings)

    return _make
