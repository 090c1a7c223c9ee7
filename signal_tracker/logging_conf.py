"""structlog on top of stdlib handlers; every handler writes JSON lines."""

from __future__ import annotations

import logging
import logging.config
import os
from collections import deque
from pathlib import Path

import structlog
from pythonjsonlogger import jsonlogger

LOGGER_NAME = "signal_tracker"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LOGGING_INITIALISED = False


def _default_log_dir() -> Path:
    env_root = os.environ.get("SIGNAL_TRACKER_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }


def _logging_dict(log_dir: Path, level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": jsonlogger.JsonFormatter, "fmt": JSON_FORMAT}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "tracker_file": _file_handler(log_dir / "tracker.log", "INFO"),
            "error_file": _file_handler(log_dir / "error.log", "ERROR"),
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": ["console", "tracker_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def _raise_verbosity() -> None:
    # Only the console follows --verbose; file handlers keep their levels.
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(logging.DEBUG)
    for handler in app_logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG)


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure logging once per process and return the application logger.

    Later calls with ``verbose=True`` lower the console level to DEBUG so a
    CLI ``--verbose`` flag works even after a library import configured INFO.
    """

    global _LOGGING_INITIALISED
    log_dir = _default_log_dir()
    (log_dir / "strategies").mkdir(parents=True, exist_ok=True)

    if not _LOGGING_INITIALISED:
        logging.config.dictConfig(_logging_dict(log_dir, "DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    elif verbose:
        _raise_verbosity()
    return structlog.get_logger(LOGGER_NAME)


def strategy_logger(strategy_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to one strategy; its events also land in ``strategies/<name>.log``."""

    configure_logging(verbose)
    path = _default_log_dir() / "strategies" / f"{strategy_name}.log"
    path.parent.mkdir(parents=True, exist_ok=True)

    std_logger = logging.getLogger(f"{LOGGER_NAME}.strategy.{strategy_name}")
    attached = {getattr(handler, "baseFilename", None) for handler in std_logger.handlers}
    if str(path) not in attached:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
        handler.setLevel(logging.INFO)
        std_logger.addHandler(handler)
    return structlog.get_logger(std_logger.name).bind(strategy=strategy_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists() or line_count <= 0:
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


__all__ = ["LOGGER_NAME", "configure_logging", "strategy_logger", "tail_log"]
