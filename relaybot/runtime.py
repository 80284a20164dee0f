# SPDX-License-Identifier: GPL-3.0-only
"""
Runtime bridge for command handlers.

Handler modules should not import the bot module directly. RelayBot sets the
active client and log pipeline here so handlers (and anything else running in
the process) can reach them.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .log_pipeline import BOT, SITE, LogPipeline

logger = logging.getLogger(__name__)

_bot: Optional[Any] = None
_pipeline: Optional[LogPipeline] = None


def set_bot(bot: Any) -> None:
    global _bot
    _bot = bot


def get_bot() -> Any:
    return _bot


def set_pipeline(pipeline: Optional[LogPipeline]) -> None:
    global _pipeline
    _pipeline = pipeline


def get_pipeline() -> Optional[LogPipeline]:
    return _pipeline


def log(message: str, site: bool = False) -> None:
    """
    Record an operational log line on the "bot" (or "site") channel.

    Falls back to stdlib logging when no pipeline is active.
    """
    pipeline = _pipeline
    if pipeline is None:
        logger.info(message)
        return
    pipeline.record(SITE if site else BOT, message)
