# SPDX-License-Identifier: GPL-3.0-only
"""
Log delivery pipeline for relaybot.

Log lines are tagged with a channel ("bot", "site"), written to the local sink
right away, and buffered per channel. Each channel runs at most one flush
cycle at a time:

    IDLE -> FLUSHING -> (IDLE | RETRY_WAIT -> FLUSHING)

A cycle waits a short debounce so bursts coalesce into one webhook message,
drains the buffer, and posts it. A 429 puts the batch back at the head of the
buffer and retries after a fixed backoff; any other failure drops the batch.
Remote failures never reach the caller of record(); local sink failures do.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional

from .errors import DeliveryFailed, DeliveryRateLimited, UnknownChannel
from .log_sink import LocalLogSink
from .webhook import is_valid_webhook_url, split_content

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

IDLE = "idle"
FLUSHING = "flushing"
RETRY_WAIT = "retry_wait"

BOT = "bot"
SITE = "site"


def format_entry(message: str, *, now: Optional[datetime] = None) -> str:
    ts = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"[{ts}] {message}"


@dataclass
class LogChannel:
    name: str
    url: Optional[str] = None
    pending: Deque[str] = field(default_factory=deque)
    flushing: bool = False  # at most one flush cycle per channel
    state: str = IDLE
    task: Optional["asyncio.Task[None]"] = None
    delivered: int = 0  # webhook messages posted
    dropped: int = 0  # lines lost to non-retryable failures
    rate_limited: int = 0

    @property
    def remote_enabled(self) -> bool:
        return bool(self.url)

    def drain(self) -> List[str]:
        batch = list(self.pending)
        self.pending.clear()
        return batch

    def requeue(self, lines: Iterable[str]) -> None:
        # Failed lines go back in front of anything recorded since.
        self.pending.extendleft(reversed(list(lines)))


class LogPipeline:
    """Owns the per-channel buffers and their flush cycles."""

    def __init__(
        self,
        sink: LocalLogSink,
        sender: Any,
        channels: Dict[str, Optional[str]],
        *,
        debounce: float = 0.5,
        retry_backoff: float = 5.0,
        send_timeout: Optional[float] = 10.0,
        requeue_on_rate_limit: bool = True,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Create a pipeline.

        Args:
            sink: local console/file sink every line is written to
            sender: object with ``async send(url, content)`` raising
                DeliveryRateLimited / DeliveryFailed
            channels: channel name -> webhook URL (None or malformed disables
                remote delivery for that channel)
            debounce: seconds a flush cycle waits before draining
            retry_backoff: seconds to wait after a 429 before retrying
            send_timeout: upper bound for one webhook POST (None = unbounded)
            requeue_on_rate_limit: put a rate-limited batch back in the buffer
                instead of dropping it
        """
        self._sink = sink
        self._sender = sender
        self.debounce = float(debounce)
        self.retry_backoff = float(retry_backoff)
        self.send_timeout = send_timeout
        self.requeue_on_rate_limit = requeue_on_rate_limit
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or datetime.now
        self._closed = False
        self._channels: Dict[str, LogChannel] = {}
        for name, url in channels.items():
            if url and not is_valid_webhook_url(url):
                logger.warning(f"Ignoring malformed webhook URL for log channel '{name}'")
                url = None
            self._channels[name] = LogChannel(name=name, url=url or None)

    @classmethod
    def from_config(cls, cfg, sink: LocalLogSink, sender: Any, **kwargs) -> "LogPipeline":
        return cls(
            sink,
            sender,
            {BOT: cfg.webhook_url, SITE: cfg.site_webhook_url},
            debounce=cfg.debounce_sec,
            retry_backoff=cfg.retry_backoff_sec,
            send_timeout=cfg.send_timeout_sec,
            requeue_on_rate_limit=cfg.requeue_on_rate_limit,
            **kwargs,
        )

    def channel(self, name: str) -> LogChannel:
        try:
            return self._channels[name]
        except KeyError:
            raise UnknownChannel(name) from None

    def channel_names(self) -> List[str]:
        return list(self._channels)

    def record(self, channel: str, message: str) -> str:
        """
        Log one message on a channel and return the formatted line.

        The line is written to the local sink synchronously (LocalSinkWriteFailed
        propagates). Remote delivery is scheduled on the running event loop.
        """
        ch = self.channel(channel)
        line = format_entry(str(message), now=self._clock())
        self._sink.write(line)

        if not ch.remote_enabled or self._closed:
            return line

        ch.pending.append(line)
        if not ch.flushing:
            self._arm(ch)
        return line

    def _arm(self, ch: LogChannel) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the line stays pending until the next record() or flush_now().
            return
        # Set before the task runs so a second record() in the same tick does not arm twice.
        ch.flushing = True
        ch.state = FLUSHING
        ch.task = loop.create_task(self._flush_cycle(ch))

    async def _flush_cycle(self, ch: LogChannel) -> None:
        ch.flushing = True
        ch.state = FLUSHING
        try:
            while True:
                await self._sleep(self.debounce)
                if not ch.pending:
                    break
                unsent = await self._deliver(ch, ch.drain())
                if unsent is None:
                    break

                ch.rate_limited += 1
                if self.requeue_on_rate_limit:
                    ch.requeue(unsent)
                else:
                    ch.dropped += len(unsent)
                ch.state = RETRY_WAIT
                logger.warning(
                    f"Rate limited on '{ch.name}' webhook. Retrying after {self.retry_backoff:g} seconds..."
                )
                await self._sleep(self.retry_backoff)
                ch.state = FLUSHING
        finally:
            ch.flushing = False
            ch.state = IDLE
            ch.task = None

        # Lines recorded while the POST was in flight would otherwise wait for the next record().
        if ch.pending and not self._closed:
            self._arm(ch)

    async def _post(self, url: str, content: str) -> None:
        if self.send_timeout is None:
            await self._sender.send(url, content)
            return
        try:
            await asyncio.wait_for(self._sender.send(url, content), timeout=self.send_timeout)
        except asyncio.TimeoutError as e:
            raise DeliveryFailed(f"webhook send timed out after {self.send_timeout:g}s") from e

    async def _deliver(self, ch: LogChannel, batch: List[str]) -> Optional[List[str]]:
        """
        Post a batch in order. Returns None when the batch is finished (sent or
        dropped) and the unsent lines when the webhook rate-limited us.
        """
        chunks = split_content(batch)
        for i, chunk in enumerate(chunks):
            try:
                await self._post(ch.url, "\n".join(chunk))
            except DeliveryRateLimited:
                return [line for c in chunks[i:] for line in c]
            except DeliveryFailed as e:
                ch.dropped += sum(len(c) for c in chunks[i:])
                logger.error(f"Error logging to '{ch.name}' webhook: {e}")
                return None
            except asyncio.CancelledError:
                ch.requeue(line for c in chunks[i:] for line in c)
                raise
            except Exception as e:
                ch.dropped += sum(len(c) for c in chunks[i:])
                logger.exception(f"Unexpected error logging to '{ch.name}' webhook: {e}")
                return None
            ch.delivered += 1
        logger.info(f"Logged to '{ch.name}' webhook successfully.")
        return None

    async def _cancel(self, ch: LogChannel) -> None:
        task = ch.task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        # A task cancelled before its first step never reaches the cycle's finally block.
        if ch.task is task:
            ch.task = None
            ch.flushing = False
            ch.state = IDLE

    async def flush_now(self, channel: Optional[str] = None) -> None:
        """
        Deliver pending lines immediately, skipping the debounce.

        Armed cycles are cancelled first, including a pending rate-limit retry.
        A 429 here re-queues the lines and (unless closed) re-arms a normal cycle.
        """
        targets = [self.channel(channel)] if channel else list(self._channels.values())
        for ch in targets:
            await self._cancel(ch)
            if not ch.remote_enabled or not ch.pending:
                continue
            # Hold the gate so record() during this POST cannot start a second delivery.
            ch.flushing = True
            ch.state = FLUSHING
            try:
                unsent = await self._deliver(ch, ch.drain())
            finally:
                ch.flushing = False
                ch.state = IDLE
            if unsent:
                ch.rate_limited += 1
                if self.requeue_on_rate_limit:
                    ch.requeue(unsent)
                else:
                    ch.dropped += len(unsent)
                logger.warning(f"Rate limited on '{ch.name}' webhook during flush; {len(unsent)} lines left pending")
            if ch.pending and not self._closed:
                self._arm(ch)

    async def wait_idle(self) -> None:
        """Wait until no channel has a flush cycle running."""
        while True:
            tasks = [ch.task for ch in self._channels.values() if ch.task is not None]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Stop scheduling, make a last delivery attempt, and release the sender."""
        if self._closed:
            return
        self._closed = True
        await self.flush_now()
        close = getattr(self._sender, "close", None)
        if close is not None:
            result = close()
            if hasattr(result, "__await__"):
                await result

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {
                "state": ch.state,
                "remote_enabled": ch.remote_enabled,
                "pending": len(ch.pending),
                "delivered": ch.delivered,
                "dropped": ch.dropped,
                "rate_limited": ch.rate_limited,
            }
            for name, ch in self._channels.items()
        }
