from __future__ import annotations
import logging

from learnsync.config import LOG_LEVEL

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL asks for more
QUIET_LOGGERS = ("urllib3", "sqlalchemy.engine")


def setup_console_logging(level: int | None = None) -> None:
    """
    Call once at service or CLI start. Prints logs to console.
    """
    level = LOG_LEVEL if level is None else level
    root = logging.getLogger()
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    if root.handlers:
        # already configured (uvicorn, pytest)
        root.setLevel(level)
        return

    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(handler)
