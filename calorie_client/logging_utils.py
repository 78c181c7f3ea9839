from __future__ import annotations

import logging

_HANDLER_NAME = "calorie_client"
_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; later calls only update the level.
    """
    logger = logging.getLogger("calorie_client")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(handler.get_name() == _HANDLER_NAME for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    return logger


def redact_credential(value: str | None) -> str:
    if not value:
        return "<none>"
    token = value.split(" ", 1)[-1]
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"
