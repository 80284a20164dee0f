# SPDX-License-Identifier: GPL-3.0-only
"""
Local durable log sink for relaybot.

Every formatted log line is echoed to the console and appended to one text
file per process run (named after the start time). The file is never rotated
or truncated.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from .errors import LocalSinkWriteFailed

FILE_STAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


class LocalLogSink:
    def __init__(self, logs_dir: str = "./logs", *, stream: Optional[TextIO] = None):
        self.logs_dir = Path(logs_dir)
        self.path: Optional[Path] = None
        self._stream = stream
        self._fh: Optional[TextIO] = None

    def open(self, *, now: Optional[datetime] = None) -> Path:
        """Create the log directory and this run's log file."""
        stamp = (now or datetime.now()).strftime(FILE_STAMP_FORMAT)
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            self.path = self.logs_dir / f"{stamp}.log"
            self._fh = self.path.open("a", encoding="utf-8")
            self._fh.write(f"Log started at: {stamp}\n\n")
            self._fh.flush()
        except OSError as e:
            raise LocalSinkWriteFailed(f"cannot open log file in {self.logs_dir}: {e}") from e
        return self.path

    def _reopen(self) -> None:
        # One file per run: after close() keep appending to the same path.
        try:
            self._fh = self.path.open("a", encoding="utf-8")
        except OSError as e:
            raise LocalSinkWriteFailed(f"cannot reopen {self.path}: {e}") from e

    def write(self, line: str) -> None:
        if self._fh is None:
            if self.path is None:
                self.open()
            else:
                self._reopen()
        stream = self._stream if self._stream is not None else sys.stdout
        print(line, file=stream)
        try:
            self._fh.write(f"{line}\n")
            self._fh.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise LocalSinkWriteFailed(f"cannot append to {self.path}: {e}") from e

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
        self._fh = None
