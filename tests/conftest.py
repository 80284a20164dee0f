from __future__ import annotations

import asyncio
import io
from datetime import datetime
from typing import List, Optional

import pytest

from relaybot.log_pipeline import LogPipeline
from relaybot.log_sink import LocalLogSink

BOT_URL = "https://discord.test/api/webhooks/1/bot"
SITE_URL = "https://discord.test/api/webhooks/2/site"
FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)
STAMP = "[2024-01-02 03:04:05]"


class FakeSender:
    """Records every send; pops one scripted outcome (None or exception) per call."""

    def __init__(self, outcomes: Optional[list] = None):
        self.calls: List[tuple] = []
        self.outcomes = list(outcomes or [])
        self.closed = False

    async def send(self, url: str, content: str) -> None:
        self.calls.append((url, content))
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if outcome is not None:
                raise outcome

    async def close(self) -> None:
        self.closed = True


class FakeSleep:
    """Stand-in for asyncio.sleep that only records the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeResponse:
    """interaction.response stand-in; send_message marks the interaction answered."""

    def __init__(self, done=False):
        self._done = done
        self.sent = []

    def is_done(self):
        return self._done

    async def send_message(self, content=None, **kwargs):
        self._done = True
        self.sent.append((content, kwargs))


class FakeFollowup:
    def __init__(self):
        self.sent = []

    async def send(self, content=None, **kwargs):
        self.sent.append((content, kwargs))


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def sink(tmp_path, console):
    s = LocalLogSink(str(tmp_path / "logs"), stream=console)
    s.open(now=FIXED_NOW)
    yield s
    s.close()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def make_pipeline(sink, fake_sleep):
    def _make(sender, channels=None, **kwargs) -> LogPipeline:
        kwargs.setdefault("sleep", fake_sleep)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        if channels is None:
            channels = {"bot": BOT_URL, "site": SITE_URL}
        return LogPipeline(sink, sender, channels, **kwargs)

    return _make
