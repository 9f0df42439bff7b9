from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

SDK_LOGGER_NAME = "pos_data_sdk"


def get_logger(name: str = SDK_LOGGER_NAME) -> logging.Logger:
    logger = logging.getLogger(name)
    if any(not isinstance(handler, logging.NullHandler) for handler in logger.handlers):
        return logger
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def sdk_logger(module: str) -> logging.Logger:
    return logging.getLogger(f"{SDK_LOGGER_NAME}.{module}")


def log_event(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    trace_id: str | None = None,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "trace_id": trace_id,
        "outcome": outcome,
    }
    payload.update({key: value for key, value in context.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str))
