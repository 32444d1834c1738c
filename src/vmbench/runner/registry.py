import logging
from collections.abc import Iterator, Sequence

from ..errors import SetupError, last_line
from ..schemas import Implementation
from .git import ensure_checkout
from .preflight import resolve_executable
from .process import TimedProcessRunner

logger = logging.getLogger(__name__)


class ImplementationRegistry:
    """Ordered, immutable set of implementations taking part in a run.

    ``prepare`` performs an implementation's one-time setup (git checkout, build
    commands, executable check) and remembers the outcome, so the work happens at
    most once per registry no matter how many programs are benchmarked.
    """

    def __init__(
        self,
        implementations: Sequence[Implementation],
        runner: TimedProcessRunner,
        *,
        setup_timeout: float,
    ) -> None:
        names = [impl.name for impl in implementations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate implementation names: {', '.join(duplicates)}")
        self._implementations = tuple(implementations)
        self._runner = runner
        self._setup_timeout = setup_timeout
        self._prepared: dict[str, SetupError | None] = {}

    def __iter__(self) -> Iterator[Implementation]:
        return iter(self._implementations)

    def __len__(self) -> int:
        return len(self._implementations)

    @property
    def names(self) -> list[str]:
        return [impl.name for impl in self._implementations]

    def get(self, name: str) -> Implementation:
        for impl in self._implementations:
            if impl.name == name:
                return impl
        raise KeyError(name)

    def is_prepared(self, impl: Implementation) -> bool:
        return impl.name in self._prepared

    def setup_error(self, impl: Implementation) -> SetupError | None:
        return self._prepared.get(impl.name)

    def prepare(self, impl: Implementation) -> None:
        """Run one-time setup for ``impl``.

        Raises:
            SetupError: If setup fails now or failed on an earlier call.
        """
        if impl.name in self._prepared:
            error = self._prepared[impl.name]
            if error is not None:
                raise error
            return

        try:
            self._do_prepare(impl)
        except SetupError as e:
            logger.warning("Setup failed for %s: %s", impl.name, e.reason)
            self._prepared[impl.name] = e
            raise
        self._prepared[impl.name] = None

    def _do_prepare(self, impl: Implementation) -> None:
        if impl.repo is not None:
            try:
                ensure_checkout(impl.repo, timeout=self._setup_timeout)
            except RuntimeError as e:
                raise SetupError(impl.name, str(e)) from e

        for command in impl.setup:
            logger.info("Preparing %s: %s", impl.name, " ".join(command))
            outcome = self._runner.run(
                command, timeout=self._setup_timeout, env=impl.env, cwd=impl.cwd
            )
            if outcome.error is not None:
                raise SetupError(impl.name, outcome.error)
            if outcome.timed_out:
                raise SetupError(
                    impl.name,
                    f"'{' '.join(command)}' timed out after {outcome.elapsed:.0f}s",
                )
            if outcome.exit_code != 0:
                detail = last_line(outcome.stderr) or last_line(outcome.stdout)
                suffix = f": {detail}" if detail else ""
                raise SetupError(
                    impl.name,
                    f"'{' '.join(command)}' exited with code {outcome.exit_code}{suffix}",
                )

        resolved = resolve_executable(impl)
        logger.debug("Resolved %s executable: %s", impl.name, resolved)
