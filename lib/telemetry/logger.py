"""Logging wiring shared by the services."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str):
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Uvicorn is started with ``log_config=None`` so its loggers propagate here
    instead of installing their own handlers.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())
