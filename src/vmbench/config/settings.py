import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .compat import env_float

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_COMPILER_COMMAND",
    "HarnessSettings",
    "LOG_LEVEL",
    "SETUP_TIMEOUT_SECONDS",
    "TIMEOUT_SECONDS",
]

# Per-run timeout for a VM implementation. Unbounded waits are never used.
TIMEOUT_SECONDS = env_float("VMBENCH_TIMEOUT_SECONDS", default=300.0)
# Setup commands (clone, cargo build) are allowed much longer
SETUP_TIMEOUT_SECONDS = env_float("VMBENCH_SETUP_TIMEOUT_SECONDS", default=1800.0)

DEFAULT_COMPILER_COMMAND: tuple[str, ...] = ("cairo-compile", "{source}", "--output", "{output}")

LOG_LEVEL = os.getenv("VMBENCH_LOG_LEVEL", "INFO").strip().upper() or "INFO"


@dataclass(frozen=True)
class HarnessSettings:
    timeout_seconds: float = TIMEOUT_SECONDS
    compile_timeout_seconds: float = TIMEOUT_SECONDS
    setup_timeout_seconds: float = SETUP_TIMEOUT_SECONDS
    work_dir: Path | None = None  # Overrides the config file's work_dir when set

    def __post_init__(self) -> None:
        for name in ("timeout_seconds", "compile_timeout_seconds", "setup_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_env(cls) -> "HarnessSettings":
        timeout = env_float("VMBENCH_TIMEOUT_SECONDS", default=TIMEOUT_SECONDS)
        work_dir_raw = os.getenv("VMBENCH_WORK_DIR", "").strip() or None
        work_dir = Path(work_dir_raw).expanduser() if work_dir_raw else None
        if work_dir is not None:
            logger.debug("Using VMBENCH_WORK_DIR: %s", work_dir)
        return cls(
            timeout_seconds=timeout,
            compile_timeout_seconds=timeout,
            setup_timeout_seconds=env_float(
                "VMBENCH_SETUP_TIMEOUT_SECONDS", default=SETUP_TIMEOUT_SECONDS
            ),
            work_dir=work_dir,
        )
