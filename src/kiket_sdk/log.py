from __future__ import annotations

import json
import logging
from typing import Any

__all__ = ["LOGGER_NAME", "configure_logging", "log_json"]

LOGGER_NAME = "kiket_sdk"

_LOGGER = logging.getLogger(LOGGER_NAME)


def configure_logging(level: int = logging.INFO) -> None:
    if _LOGGER.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(level)


def log_json(level: int, message: str, *, exc_info: bool = False, **fields: Any) -> None:
    payload = {"message": message, **fields}
    _LOGGER.log(level, json.dumps(payload, ensure_ascii=True, default=str), exc_info=exc_info)
