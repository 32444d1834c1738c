import sys
import time
from pathlib import Path

import psutil
import pytest

from vmbench.runner.process import RunOutcome, TimedProcessRunner

PYTHON = sys.executable


def _sleep_cmd(seconds: float) -> list[str]:
    return [PYTHON, "-c", f"import time; time.sleep({seconds})"]


class TestTimedProcessRunner:
    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError, match="timeout must be positive"):
            TimedProcessRunner(0)

    def test_sleep_within_timeout_is_measured(self) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run(_sleep_cmd(0.3))

        assert outcome.ok is True
        assert outcome.timed_out is False
        assert outcome.exit_code == 0
        assert 0.3 <= outcome.elapsed < 5.0

    def test_sleep_past_timeout_is_killed(self) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        start = time.perf_counter()
        outcome = runner.run(_sleep_cmd(30), timeout=0.5)
        wall = time.perf_counter() - start

        assert outcome.timed_out is True
        assert outcome.ok is False
        assert outcome.exit_code is None
        assert outcome.elapsed == 0.5
        assert wall < 10.0
        assert outcome.pid is not None
        assert not psutil.pid_exists(outcome.pid) or (
            psutil.Process(outcome.pid).status() == psutil.STATUS_ZOMBIE
        )

    def test_timeout_kills_grandchildren(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "child.pid"
        script = (
            "import subprocess, sys, time\n"
            "p = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
            f"open({str(pid_file)!r}, 'w').write(str(p.pid))\n"
            "time.sleep(30)\n"
        )
        runner = TimedProcessRunner(timeout=3.0)

        outcome = runner.run([PYTHON, "-c", script])

        assert outcome.timed_out is True
        child_pid = int(pid_file.read_text())
        # The orphaned grandchild may linger briefly as a zombie before init reaps it
        deadline = time.monotonic() + 5
        while psutil.pid_exists(child_pid) and time.monotonic() < deadline:
            try:
                if psutil.Process(child_pid).status() == psutil.STATUS_ZOMBIE:
                    break
            except psutil.NoSuchProcess:
                break
            time.sleep(0.05)
        if psutil.pid_exists(child_pid):
            assert psutil.Process(child_pid).status() == psutil.STATUS_ZOMBIE

    @pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX only")
    def test_timeout_is_bounded_when_orphan_holds_pipes(self) -> None:
        # sh exits at once, leaving the backgrounded sleep reparented with our stdout
        script = (
            "import subprocess, time\n"
            "subprocess.run(['sh', '-c', 'sleep 8 &'])\n"
            "time.sleep(30)\n"
        )
        runner = TimedProcessRunner(timeout=1.0)

        start = time.perf_counter()
        outcome = runner.run([PYTHON, "-c", script])
        wall = time.perf_counter() - start

        assert outcome.timed_out is True
        assert outcome.elapsed == 1.0
        assert wall < 6.0

    def test_non_zero_exit_is_reported_not_raised(self) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run(
            [PYTHON, "-c", "import sys; sys.stderr.write('boom\\n'); sys.exit(3)"]
        )

        assert outcome.exit_code == 3
        assert outcome.ok is False
        assert outcome.timed_out is False
        assert "boom" in outcome.stderr

    def test_captures_stdout(self) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run([PYTHON, "-c", "print('hello vm')"])

        assert outcome.stdout.strip() == "hello vm"
        assert outcome.command[0] == PYTHON

    def test_missing_executable_returns_error_outcome(self, tmp_path: Path) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run([str(tmp_path / "does-not-exist")])

        assert outcome.ok is False
        assert outcome.exit_code is None
        assert outcome.error is not None
        assert "failed to start" in outcome.error

    def test_env_and_cwd_are_applied(self, tmp_path: Path) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run(
            [PYTHON, "-c", "import os; print(os.environ['VMBENCH_TEST'], os.getcwd())"],
            env={"VMBENCH_TEST": "pypy"},
            cwd=tmp_path,
        )

        value, cwd = outcome.stdout.split()
        assert value == "pypy"
        assert Path(cwd).resolve() == tmp_path.resolve()

    @pytest.mark.skipif(sys.platform == "win32", reason="rusage is POSIX only")
    def test_cpu_times_are_recorded(self) -> None:
        runner = TimedProcessRunner(timeout=10.0)

        outcome = runner.run([PYTHON, "-c", "sum(range(10**6))"])

        assert outcome.user_seconds is not None
        assert outcome.system_seconds is not None
        assert outcome.user_seconds >= 0.0


def test_run_outcome_ok_requires_clean_exit() -> None:
    base = {"command": ("vm",), "elapsed": 1.0, "stdout": "", "stderr": ""}
    assert RunOutcome(exit_code=0, **base).ok is True
    assert RunOutcome(exit_code=1, **base).ok is False
    assert RunOutcome(exit_code=0, timed_out=True, **base).ok is False
    assert RunOutcome(exit_code=None, error="failed to start vm", **base).ok is False
