import logging
import subprocess  # nosec B404
from pathlib import Path

from ..schemas import RepoSpec

logger = logging.getLogger(__name__)


def _run_git(repo_path: Path | None, args: list[str], timeout: float | None = None) -> None:
    cmd = ["git"]
    if repo_path is not None:
        cmd.extend(["-C", str(repo_path)])
    cmd.extend(args)
    try:
        completed = subprocess.run(  # nosec B603 B607
            cmd,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"git {' '.join(args)} timed out after {timeout}s") from e
    except FileNotFoundError as e:
        raise RuntimeError("git executable not found") from e
    if completed.returncode == 0:
        return
    stderr = (completed.stderr or completed.stdout or "").strip()
    details = f": {stderr}" if stderr else ""
    raise RuntimeError(f"git {' '.join(args)} failed (code {completed.returncode}){details}")


def git_has_commit(repo_path: Path, commit: str) -> bool:
    completed = subprocess.run(  # nosec B603 B607
        ["git", "-C", str(repo_path), "cat-file", "-e", f"{commit}^{{commit}}"],
        check=False,
        capture_output=True,
    )
    return completed.returncode == 0


def ensure_checkout(repo: RepoSpec, *, timeout: float | None = None) -> Path:
    """Shallow-clone ``repo.url`` into ``repo.dest`` and check out ``repo.ref`` if given.

    An existing checkout is reused.

    Raises:
        RuntimeError: If any git command fails.
    """
    if not repo.dest.exists():
        logger.info("Cloning %s into %s", repo.url, repo.dest)
        repo.dest.parent.mkdir(parents=True, exist_ok=True)
        _run_git(None, ["clone", "--depth", "1", repo.url, str(repo.dest)], timeout)

    if repo.ref:
        if not git_has_commit(repo.dest, repo.ref):
            _run_git(repo.dest, ["fetch", "--depth", "1", "origin", repo.ref], timeout)
        _run_git(repo.dest, ["checkout", repo.ref], timeout)
    return repo.dest
