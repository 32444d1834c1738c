import logging
import os
import signal
import subprocess  # nosec B404 - running external compilers and VMs is the point
import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import psutil

if sys.platform != "win32":
    import resource

logger = logging.getLogger(__name__)

# Bound on collecting output after a kill; survivors may still hold the pipes open
_DRAIN_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class RunOutcome:
    """Result of one timed subprocess invocation.

    ``exit_code`` is None when the process could not be started (``error`` is set)
    or was killed on timeout.
    """

    command: tuple[str, ...]
    elapsed: float
    exit_code: int | None
    stdout: str
    stderr: str
    timed_out: bool = False
    pid: int | None = None
    user_seconds: float | None = None
    system_seconds: float | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.error is None and self.exit_code == 0


def kill_process_tree(pid: int) -> None:
    try:
        parent = psutil.Process(pid)
    except psutil.Error:
        return

    for child in parent.children(recursive=True):
        try:
            child.kill()
        except psutil.Error:
            pass
    try:
        parent.kill()
    except psutil.Error:
        pass


def close_process_streams(process: subprocess.Popen[bytes]) -> None:
    for stream in (process.stdin, process.stdout, process.stderr):
        try:
            if stream:
                stream.close()
        except OSError:
            pass


def _kill_session(process: subprocess.Popen[bytes]) -> None:
    """Kill the child, its descendants, and anything left in its process group.

    Descendants reparented away from the child are out of reach of the psutil walk
    but still share the session the child was started in.
    """
    kill_process_tree(process.pid)
    if sys.platform == "win32":
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass


def _children_cpu_times() -> tuple[float, float] | None:
    if sys.platform == "win32":
        return None
    usage = resource.getrusage(resource.RUSAGE_CHILDREN)
    return usage.ru_utime, usage.ru_stime


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class TimedProcessRunner:
    """Runs one external command at a time and measures its wall-clock duration.

    The call blocks until the process exits or the timeout expires. On timeout the
    whole process tree is killed and the reported elapsed time equals the timeout.
    """

    def __init__(self, timeout: float) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.timeout = timeout

    def run(
        self,
        command: Sequence[str],
        *,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> RunOutcome:
        cmd = tuple(str(arg) for arg in command)
        limit = self.timeout if timeout is None else timeout
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        logger.debug("Running (timeout=%.1fs): %s", limit, " ".join(cmd))
        cpu_before = _children_cpu_times()
        start = time.perf_counter()
        try:
            process = subprocess.Popen(  # nosec B603 - command comes from the benchmark config
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=full_env,
                cwd=cwd,
                start_new_session=sys.platform != "win32",
            )
        except OSError as e:
            elapsed = time.perf_counter() - start
            logger.debug("Failed to start %s: %s", cmd[0], e)
            return RunOutcome(
                command=cmd,
                elapsed=elapsed,
                exit_code=None,
                stdout="",
                stderr="",
                error=f"failed to start {cmd[0]}: {e}",
            )

        try:
            stdout, stderr = process.communicate(timeout=limit)
        except subprocess.TimeoutExpired:
            _kill_session(process)
            stdout, stderr = self._drain(process)
            logger.debug("Timed out after %.1fs: %s", limit, cmd[0])
            return RunOutcome(
                command=cmd,
                elapsed=limit,
                exit_code=None,
                stdout=_decode(stdout),
                stderr=_decode(stderr),
                timed_out=True,
                pid=process.pid,
            )
        except BaseException:
            # Operator interrupt: never leave the child running behind us
            _kill_session(process)
            close_process_streams(process)
            process.wait()
            raise
        elapsed = time.perf_counter() - start

        user_seconds = system_seconds = None
        cpu_after = _children_cpu_times()
        if cpu_before is not None and cpu_after is not None:
            user_seconds = max(0.0, cpu_after[0] - cpu_before[0])
            system_seconds = max(0.0, cpu_after[1] - cpu_before[1])

        return RunOutcome(
            command=cmd,
            elapsed=elapsed,
            exit_code=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            pid=process.pid,
            user_seconds=user_seconds,
            system_seconds=system_seconds,
        )

    @staticmethod
    def _drain(process: subprocess.Popen[bytes]) -> tuple[bytes, bytes]:
        try:
            return process.communicate(timeout=_DRAIN_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired as e:
            logger.debug("Output pipes still open after kill; closing them")
            close_process_streams(process)
            process.wait()
            return e.output or b"", e.stderr or b""
