# SPDX-License-Identifier: GPL-3.0-only
"""Error types raised by the log delivery pipeline."""

from __future__ import annotations

from typing import Optional


class LogPipelineError(Exception):
    """Base class for log pipeline errors."""


class DeliveryFailed(LogPipelineError):
    """The webhook rejected the batch or could not be reached."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DeliveryRateLimited(DeliveryFailed):
    """The webhook answered 429; the batch should be retried after a backoff."""

    def __init__(self, message: str = "rate limited", *, retry_after: Optional[float] = None):
        super().__init__(message, status=429)
        self.retry_after = retry_after


class LocalSinkWriteFailed(LogPipelineError):
    """Writing to the console/file sink failed. Always propagated to the caller."""


class UnknownChannel(LogPipelineError, KeyError):
    """record() was called with a channel name the pipeline does not own."""
