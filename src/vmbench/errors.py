class VmbenchError(Exception):
    """Base class for harness errors."""


class ConfigError(VmbenchError):
    pass


class CompileError(VmbenchError):
    """A source program did not produce a usable bytecode artifact."""

    def __init__(self, program: str, exit_code: int | None, stderr: str) -> None:
        self.program = program
        self.exit_code = exit_code
        self.stderr = stderr
        detail = last_line(stderr)
        if exit_code is None:
            self.reason = detail or "compiler did not run"
        else:
            self.reason = f"exit code {exit_code}" + (f": {detail}" if detail else "")
        super().__init__(f"{program}: compile failed: {self.reason}")


class SetupError(VmbenchError):
    """One-time preparation of an implementation failed."""

    def __init__(self, implementation: str, reason: str) -> None:
        self.implementation = implementation
        self.reason = reason
        super().__init__(f"{implementation}: setup failed: {reason}")


class HarnessEnvironmentError(VmbenchError):
    """Filesystem or report-destination failure. Aborts the whole run."""


def last_line(text: str) -> str:
    """Last non-blank line of captured process output."""
    for line in reversed((text or "").strip().splitlines()):
        if line.strip():
            return line.strip()
    return ""
