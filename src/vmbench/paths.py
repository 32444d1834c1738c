from pathlib import Path

from platformdirs import user_state_dir

# Defaults when the config file does not override them
DEFAULT_WORK_DIR_NAME = ".vmbench"
DEFAULT_REPORT_NAME = "results"
DEFAULT_ARTIFACT_SUFFIX = ".json"
# Written into a work dir vmbench created itself
WORK_DIR_MARKER = ".vmbench-workdir"

# Logging - Cross-platform state directory:
# - Linux: ~/.local/state/vmbench
# - macOS: ~/Library/Application Support/vmbench
# - Windows: %LOCALAPPDATA%\vmbench
# Note: Directory is created lazily when the file handler is installed
LOG_DIR = Path(user_state_dir("vmbench", appauthor=False))
LOG_PATH = LOG_DIR / "vmbench.log"


def resolve_relative(base_dir: Path, value: str | Path) -> Path:
    """Resolve value against base_dir unless it is already absolute."""
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return base_dir / path
