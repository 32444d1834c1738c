import hashlib
import platform
import sys
from datetime import datetime
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

from ..schemas import BenchmarkConfig


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def build_run_metadata(
    *,
    config: BenchmarkConfig,
    started_at: datetime,
    completed_at: datetime,
    duration_s: float,
) -> dict[str, Any]:
    """Build reproducibility metadata for this benchmark run."""
    # NOTE: Implementation env values are recorded; keep secrets out of benchmark configs.
    config_meta = config.to_dict()
    if config.source_path is not None and config.source_path.is_file():
        config_meta["config_path"] = str(config.source_path)
        config_meta["config_sha256"] = _sha256_file(config.source_path)

    sources: dict[str, str | None] = {}
    for program in config.programs:
        sources[program.name] = _sha256_file(program.source) if program.source.is_file() else None

    vmbench_version: str | None = None
    try:
        vmbench_version = importlib_metadata.version("vmbench")
    except importlib_metadata.PackageNotFoundError:
        vmbench_version = None

    return {
        "run": {
            "started_at_utc": started_at.isoformat(),
            "completed_at_utc": completed_at.isoformat(),
            "duration_s": round(duration_s, 3),
        },
        "config": config_meta,
        "source_sha256": sources,
        "environment": {
            "python": sys.version,
            "platform": platform.platform(),
            "machine": platform.machine(),
            "vmbench_version": vmbench_version,
        },
    }
