import json
import logging
from logging.config import dictConfig
from typing import Any, Dict

LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
    },
    "handlers": {
        "console": {
            # stderr, stdout is reserved for bundle output
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "tsbundle": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

dictConfig(LOGGING_CONFIG)

logger: logging.Logger = logging.getLogger("tsbundle")


def set_level(level: int | str) -> None:
    """Change the verbosity of the ``tsbundle`` logger (``--verbose`` on the CLI)."""
    logger.setLevel(level)


class BundleLogger:
    """
    Structured event logging for bundle runs: every call logs one JSON
    object ``{"event": ..., "data": {...}}`` built from its keyword arguments.
    """

    @classmethod
    def debug(cls, event_type: str, **data: Any) -> None:
        cls._log_event(logging.DEBUG, event_type, data)

    @classmethod
    def info(cls, event_type: str, **data: Any) -> None:
        cls._log_event(logging.INFO, event_type, data)

    @classmethod
    def warning(cls, event_type: str, **data: Any) -> None:
        cls._log_event(logging.WARNING, event_type, data)

    @classmethod
    def error(cls, event_type: str, **data: Any) -> None:
        cls._log_event(logging.ERROR, event_type, data)

    @classmethod
    def _log_event(cls, level: int, event_type: str, data: Dict[str, Any]) -> None:
        if not logger.isEnabledFor(level):
            return
        payload: Dict[str, Any] = {"event": event_type}
        if data:
            payload["data"] = data
        logger.log(level, json.dumps(payload, default=str))
