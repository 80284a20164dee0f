# SPDX-License-Identifier: GPL-3.0-only
"""
Child-process supervision for the site web server.

The server runs as a subprocess of the bot; its stdout/stderr lines and its
exit code are forwarded to the "site" log channel.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, List, Optional, Sequence

from .runtime import log as runtime_log

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]


class ProcessSupervisor:
    def __init__(
        self,
        argv: Sequence[str],
        log: Optional[LogFn] = None,
        *,
        label: str = "Site Server",
        stop_grace_sec: float = 5.0,
        line_limit: int = 2**16,
    ):
        """
        Supervise one child process.

        Output and exit lines go to ``log``; by default that is the "site"
        channel of the active pipeline (see relaybot.runtime).
        """
        self.argv: List[str] = list(argv)
        self.label = label
        self._log = log or functools.partial(runtime_log, site=True)
        self._line_limit = line_limit
        self._stop_grace_sec = stop_grace_sec
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._watchers: List["asyncio.Task[None]"] = []

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    @property
    def returncode(self) -> Optional[int]:
        return None if self._proc is None else self._proc.returncode

    async def start(self) -> bool:
        """Spawn the process. Returns False when it could not be started."""
        if not self.argv:
            logger.info(f"{self.label} disabled (no command configured)")
            return False
        if self.running:
            return True
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self._line_limit,
            )
        except OSError as e:
            self._log(f"Failed to start {self.label} ({' '.join(self.argv)}): {e}")
            return False

        self._watchers = [
            asyncio.create_task(self._pump(self._proc.stdout, "stdout")),
            asyncio.create_task(self._pump(self._proc.stderr, "stderr")),
            asyncio.create_task(self._watch_exit()),
        ]
        return True

    async def _pump(self, stream: Optional[asyncio.StreamReader], name: str) -> None:
        if stream is None:
            return
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # readline() discards a line longer than the stream limit; keep reading after it.
                self._log(f"{self.label} {name}: <line longer than {self._line_limit} bytes dropped>")
                continue
            if not raw:
                return
            text = raw.decode("utf-8", errors="replace").rstrip()
            if text:
                self._log(f"{self.label} {name}: {text}")

    async def _watch_exit(self) -> None:
        code = await self._proc.wait()
        # Let the pumps drain whatever the process printed last.
        await asyncio.gather(*self._watchers[:2], return_exceptions=True)
        self._log(f"{self.label} process exited with code {code}")

    async def wait(self) -> Optional[int]:
        if self._proc is None:
            return None
        await asyncio.gather(*self._watchers, return_exceptions=True)
        return self._proc.returncode

    async def stop(self) -> None:
        if not self.running:
            await self.wait()
            return
        try:
            self._proc.terminate()
            await asyncio.wait_for(self._proc.wait(), timeout=self._stop_grace_sec)
        except ProcessLookupError:
            pass
        except asyncio.TimeoutError:
            logger.warning(f"{self.label} did not exit after terminate; killing")
            self._proc.kill()
        await self.wait()
