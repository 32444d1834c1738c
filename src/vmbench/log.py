import logging

from .paths import LOG_PATH

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(level: str = "INFO", *, log_file: bool = False) -> None:
    """Configure root logging for the CLI.

    Console output goes to stderr so stdout stays clean for the report. With
    ``log_file`` a copy is appended to the platform state dir.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_PATH, encoding="utf-8"))

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger(__name__).debug("Logging configured (level=%s, file=%s)", level, log_file)
