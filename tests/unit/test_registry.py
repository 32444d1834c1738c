import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from vmbench.errors import SetupError
from vmbench.runner.process import TimedProcessRunner
from vmbench.runner.registry import ImplementationRegistry
from vmbench.schemas import Implementation, RepoSpec

PYTHON = sys.executable


def _impl(name: str, *, setup: tuple[tuple[str, ...], ...] = (), **kwargs) -> Implementation:
    return Implementation(
        name=name,
        command=(PYTHON, "-c", "pass", "{artifact}"),
        setup=setup,
        **kwargs,
    )


def _registry(*impls: Implementation) -> ImplementationRegistry:
    return ImplementationRegistry(impls, TimedProcessRunner(10.0), setup_timeout=10.0)


def test_iterates_in_declaration_order() -> None:
    registry = _registry(_impl("fast-vm"), _impl("slow-vm"), _impl("other-vm"))

    assert [i.name for i in registry] == ["fast-vm", "slow-vm", "other-vm"]
    assert registry.names == ["fast-vm", "slow-vm", "other-vm"]
    assert len(registry) == 3
    assert registry.get("slow-vm").name == "slow-vm"


def test_rejects_duplicate_names() -> None:
    with pytest.raises(ValueError, match="Duplicate implementation names: vm"):
        _registry(_impl("vm"), _impl("vm"))


def test_get_unknown_raises_key_error() -> None:
    with pytest.raises(KeyError):
        _registry(_impl("vm")).get("missing")


def test_prepare_runs_setup_commands_once(tmp_path: Path) -> None:
    counter = tmp_path / "count.txt"
    bump = (PYTHON, "-c", f"open({str(counter)!r}, 'a').write('x')")
    impl = _impl("vm", setup=(bump,))
    registry = _registry(impl)

    registry.prepare(impl)
    registry.prepare(impl)

    assert counter.read_text() == "x"
    assert registry.is_prepared(impl)
    assert registry.setup_error(impl) is None


def test_prepare_uses_implementation_env_and_cwd(tmp_path: Path) -> None:
    marker = tmp_path / "marker.txt"
    script = "import os; open('marker.txt', 'w').write(os.environ['PYENV_VERSION'])"
    impl = _impl(
        "pypy",
        setup=((PYTHON, "-c", script),),
        env={"PYENV_VERSION": "pypy3.7-7.3.9"},
        cwd=tmp_path,
    )

    _registry(impl).prepare(impl)

    assert marker.read_text() == "pypy3.7-7.3.9"


def test_failed_setup_is_remembered(tmp_path: Path) -> None:
    counter = tmp_path / "count.txt"
    fail = (
        PYTHON,
        "-c",
        f"import sys; open({str(counter)!r}, 'a').write('x'); "
        "sys.stderr.write('cargo: linker not found\\n'); sys.exit(101)",
    )
    impl = _impl("oriac", setup=(fail,))
    registry = _registry(impl)

    with pytest.raises(SetupError, match="exited with code 101: cargo: linker not found"):
        registry.prepare(impl)
    with pytest.raises(SetupError):
        registry.prepare(impl)

    assert counter.read_text() == "x"
    error = registry.setup_error(impl)
    assert error is not None
    assert error.implementation == "oriac"


def test_setup_timeout_is_a_setup_error() -> None:
    impl = _impl("slow-build", setup=((PYTHON, "-c", "import time; time.sleep(30)"),))
    registry = ImplementationRegistry([impl], TimedProcessRunner(10.0), setup_timeout=0.5)

    with pytest.raises(SetupError, match="timed out"):
        registry.prepare(impl)


def test_missing_executable_fails_preflight(tmp_path: Path) -> None:
    impl = Implementation(name="ghost", command=(str(tmp_path / "ghost-vm"), "{artifact}"))

    with pytest.raises(SetupError, match="not found"):
        _registry(impl).prepare(impl)


def test_repo_checkout_failure_is_a_setup_error(tmp_path: Path) -> None:
    repo = RepoSpec(url="https://example.invalid/oriac.git", dest=tmp_path / "oriac")
    impl = _impl("oriac", repo=repo)

    with patch(
        "vmbench.runner.registry.ensure_checkout",
        side_effect=RuntimeError("git clone failed (code 128): repository not found"),
    ):
        with pytest.raises(SetupError, match="repository not found"):
            _registry(impl).prepare(impl)


def test_repo_checkout_runs_before_setup(tmp_path: Path) -> None:
    order: list[str] = []
    log = tmp_path / "order.txt"
    impl = _impl(
        "oriac",
        repo=RepoSpec(url="https://example.invalid/oriac.git", dest=tmp_path / "oriac"),
        setup=((PYTHON, "-c", f"open({str(log)!r}, 'a').write('build')"),),
    )

    def _fake_checkout(repo: RepoSpec, *, timeout: float | None = None) -> Path:
        order.append("clone")
        return repo.dest

    with patch("vmbench.runner.registry.ensure_checkout", side_effect=_fake_checkout):
        _registry(impl).prepare(impl)

    order.append(log.read_text())
    assert order == ["clone", "build"]
