"""Comparative benchmarking harness for bytecode VM implementations."""

from .errors import CompileError, ConfigError, HarnessEnvironmentError, SetupError, VmbenchError
from .runner.executor import BenchmarkOrchestrator
from .runner.process import RunOutcome, TimedProcessRunner
from .runner.results import EntryStatus, Report, RunResult
from .schemas import BenchmarkConfig, Implementation, Program

__version__ = "0.1.0"

__all__ = [
    "BenchmarkConfig",
    "BenchmarkOrchestrator",
    "CompileError",
    "ConfigError",
    "EntryStatus",
    "HarnessEnvironmentError",
    "Implementation",
    "Program",
    "Report",
    "RunOutcome",
    "RunResult",
    "SetupError",
    "TimedProcessRunner",
    "VmbenchError",
]
