from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .process import RunOutcome


class EntryStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SETUP_FAILED = "setup_failed"
    COMPILE_FAILED = "compile_failed"


@dataclass(frozen=True)
class RunResult:
    """One line of the report.

    ``implementation`` is None only for COMPILE_FAILED entries, which stand for the
    whole program.
    """

    program: str
    implementation: str | None
    status: EntryStatus
    elapsed: float | None = None
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    user_seconds: float | None = None
    system_seconds: float | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status is EntryStatus.OK

    @classmethod
    def from_outcome(cls, program: str, implementation: str, outcome: RunOutcome) -> "RunResult":
        if outcome.timed_out:
            status = EntryStatus.TIMEOUT
        elif outcome.ok:
            status = EntryStatus.OK
        else:
            status = EntryStatus.FAILED
        return cls(
            program=program,
            implementation=implementation,
            status=status,
            elapsed=outcome.elapsed,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            user_seconds=outcome.user_seconds,
            system_seconds=outcome.system_seconds,
            error=outcome.error,
        )

    @classmethod
    def compile_failed(cls, program: str, error: str) -> "RunResult":
        return cls(
            program=program,
            implementation=None,
            status=EntryStatus.COMPILE_FAILED,
            error=error,
        )

    @classmethod
    def setup_failed(cls, program: str, implementation: str, error: str) -> "RunResult":
        return cls(
            program=program,
            implementation=implementation,
            status=EntryStatus.SETUP_FAILED,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        d["success"] = self.success
        return d


@dataclass
class Report:
    """Entries in execution order, grouped by program for rendering."""

    entries: list[RunResult] = field(default_factory=list)

    def append(self, entry: RunResult) -> None:
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def programs(self) -> list[str]:
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.program, None)
        return list(seen)

    def for_program(self, program: str) -> list[RunResult]:
        return [e for e in self.entries if e.program == program]

    def pairs(self) -> list[tuple[str, str | None]]:
        return [(e.program, e.implementation) for e in self.entries]

    def stats(self) -> dict[str, int]:
        counts = {status.value: 0 for status in EntryStatus}
        for entry in self.entries:
            counts[entry.status.value] += 1
        counts["total"] = len(self.entries)
        return counts
