import json
import logging
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..errors import HarnessEnvironmentError, last_line
from .results import EntryStatus, Report, RunResult

logger = logging.getLogger(__name__)


def format_entry(entry: RunResult) -> str:
    """Render one report line: a duration, or a failure label in its place."""
    if entry.status is EntryStatus.COMPILE_FAILED:
        reason = entry.error or "unknown error"
        return f"{entry.program}: compile failed: {reason}"

    label = entry.implementation
    if entry.status is EntryStatus.OK:
        line = f"{label}: {entry.elapsed:.3f}s"
        if entry.user_seconds is not None and entry.system_seconds is not None:
            line += f" (user {entry.user_seconds:.3f}s, sys {entry.system_seconds:.3f}s)"
        return line
    if entry.status is EntryStatus.TIMEOUT:
        return f"{label}: TIMEOUT after {entry.elapsed:.3f}s"
    if entry.status is EntryStatus.SETUP_FAILED:
        return f"{label}: SETUP FAILED: {entry.error or 'unknown error'}"

    if entry.error:
        return f"{label}: FAILED: {entry.error}"
    detail = last_line(entry.stderr) or last_line(entry.stdout)
    line = f"{label}: FAILED (exit code {entry.exit_code})"
    return f"{line}: {detail}" if detail else line


def render_report(report: Report) -> str:
    sections: list[str] = []
    for program in report.programs():
        lines = [f"* {program} *", ""]
        lines.extend(format_entry(e) for e in report.for_program(program))
        sections.append("\n".join(lines))
    return "\n\n".join(sections) + "\n" if sections else ""


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree. Returns False if it was already absent."""
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


class ResultReporter:
    """Collects run results in execution order and writes the final report."""

    def __init__(self) -> None:
        self.report = Report()
        self._flushed = False

    def record(self, entry: RunResult) -> None:
        self.report.append(entry)
        logger.info("%s", format_entry(entry))

    @property
    def entries(self) -> list[RunResult]:
        return self.report.entries

    def render(self) -> str:
        return render_report(self.report)

    def flush(self, destination: Path) -> str:
        """Write the rendered report to ``destination`` and return the text.

        Raises:
            HarnessEnvironmentError: If the report was already flushed or cannot be written.
        """
        if self._flushed:
            raise HarnessEnvironmentError("Report already flushed for this run")
        text = self.render()
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(text, encoding="utf-8")
        except OSError as e:
            raise HarnessEnvironmentError(f"Cannot write report to {destination}: {e}") from e
        self._flushed = True
        logger.debug("Report written to %s (%d entries)", destination, len(self.report))
        return text

    def cleanup(self, paths: Iterable[Path]) -> list[Path]:
        """Remove transient paths. Missing paths count as already cleaned.

        Returns:
            The paths that actually existed and were removed.

        Raises:
            HarnessEnvironmentError: If an existing path cannot be removed.
        """
        removed: list[Path] = []
        for path in paths:
            try:
                if remove_path(path):
                    removed.append(path)
            except OSError as e:
                raise HarnessEnvironmentError(f"Cannot remove {path}: {e}") from e
        if removed:
            logger.debug("Removed %d transient paths", len(removed))
        return removed

    def save_json(self, output_path: Path, metadata: dict[str, Any] | None = None) -> Path:
        """Save entries to JSONL and a summary to a ``.report.json`` file next to it."""
        jsonl_path = (
            output_path if output_path.suffix == ".jsonl" else output_path.with_suffix(".jsonl")
        )
        report_path = jsonl_path.with_suffix(".report.json")
        summary = {
            "metadata": metadata or {},
            "stats": self.report.stats(),
            "programs": self.report.programs(),
        }
        try:
            jsonl_path.parent.mkdir(parents=True, exist_ok=True)
            with jsonl_path.open("w", encoding="utf-8") as f:
                for entry in self.report.entries:
                    f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
            with report_path.open("w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise HarnessEnvironmentError(f"Cannot write results to {jsonl_path}: {e}") from e
        return jsonl_path
