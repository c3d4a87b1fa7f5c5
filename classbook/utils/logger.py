"""Logging setup shared by every layer."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from classbook.utils.config import get_settings


_LOGGER_INITIALIZED = False
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once per process."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT, stream=sys.stdout)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def log_transition(
    logger: logging.Logger,
    *,
    action: str,
    instance_key: str,
    actor_id: str,
    outcome: str = "ok",
) -> None:
    """Emit one audit line per slot state transition."""
    logger.info(
        "slot transition action=%s instance=%s actor=%s outcome=%s",
        action,
        instance_key,
        actor_id,
        outcome,
    )
