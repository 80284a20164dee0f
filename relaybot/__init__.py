#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-3.0-only
"""
relaybot: a small Discord bot with webhook log forwarding.

- slash commands loaded from ``relaybot.commands``
- a supervised site server child process
- log lines batched per channel ("bot", "site") and posted to Discord webhooks
"""

from __future__ import annotations

from .errors import (
    DeliveryFailed,
    DeliveryRateLimited,
    LocalSinkWriteFailed,
    LogPipelineError,
    UnknownChannel,
)
from .log_pipeline import BOT, SITE, LogChannel, LogPipeline, format_entry
from .log_sink import LocalLogSink
from .runtime import log

__all__ = [
    "BOT",
    "SITE",
    "DeliveryFailed",
    "DeliveryRateLimited",
    "LocalLogSink",
    "LocalSinkWriteFailed",
    "LogChannel",
    "LogPipeline",
    "LogPipelineError",
    "UnknownChannel",
    "format_entry",
    "log",
]
