import os
import shutil
from pathlib import Path

from ..errors import SetupError
from ..schemas import Implementation


def resolve_executable(impl: Implementation) -> str:
    """Locate the implementation's executable before it is benchmarked.

    Explicit paths (anything containing a separator) are checked relative to the
    implementation's working directory; bare names are looked up on PATH.

    Raises:
        SetupError: If the executable does not exist.
    """
    executable = impl.executable
    if not executable:
        raise SetupError(impl.name, "executable is empty")
    if "{" in executable:
        # Depends on per-run placeholders; checked when the command runs
        return executable

    if any(sep in executable for sep in (os.sep, "/", "\\")):
        path = Path(executable)
        if not path.is_absolute() and impl.cwd is not None:
            path = impl.cwd / path
        if path.exists():
            return str(path)
        raise SetupError(impl.name, f"executable '{executable}' not found at {path}")

    search_path = impl.env.get("PATH") if impl.env else None
    resolved = shutil.which(executable, path=search_path)
    if resolved:
        return resolved
    raise SetupError(impl.name, f"executable '{executable}' not found on PATH")
