"""Configuration module for vmbench."""

from .loader import build_config, check_report_path, load_config, parse_command
from .settings import (
    DEFAULT_COMPILER_COMMAND,
    LOG_LEVEL,
    SETUP_TIMEOUT_SECONDS,
    TIMEOUT_SECONDS,
    HarnessSettings,
)

__all__ = [
    # Settings
    "DEFAULT_COMPILER_COMMAND",
    "LOG_LEVEL",
    "SETUP_TIMEOUT_SECONDS",
    "TIMEOUT_SECONDS",
    "HarnessSettings",
    # Loader
    "build_config",
    "check_report_path",
    "load_config",
    "parse_command",
]
