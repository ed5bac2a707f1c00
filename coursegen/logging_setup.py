"""Logging setup shared by the server and scripts."""

import logging

from rich.logging import RichHandler

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

_LOGGING_INITIALIZED = False


def setup_logging(level: str = "INFO", rich: bool = True) -> None:
    """Install one handler on the root logger and route uvicorn through it.

    Safe to call more than once; later calls only adjust the level.
    """
    global _LOGGING_INITIALIZED

    root = logging.getLogger()
    root.setLevel(level.upper())
    if _LOGGING_INITIALIZED:
        return

    if rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s", datefmt=LOG_DATE_FORMAT))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))

    root.addHandler(handler)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(logger_name)
        log.handlers = []
        log.propagate = True

    _LOGGING_INITIALIZED = True
