# SPDX-License-Identifier: GPL-3.0-only
"""
Discord webhook delivery.

Posts a batch of log lines as a plain webhook message and classifies failures
into rate-limited (retryable) and everything else (dropped).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .errors import DeliveryFailed, DeliveryRateLimited

logger = logging.getLogger(__name__)

# Discord rejects message content longer than 2000 characters.
MAX_CONTENT_CHARS = 1900


def is_valid_webhook_url(url: Optional[str]) -> bool:
    u = (url or "").strip().lower()
    return u.startswith("https://") or u.startswith("http://")


def split_content(lines: List[str], *, chunk_size: int = MAX_CONTENT_CHARS) -> List[List[str]]:
    """
    Group lines into consecutive chunks whose newline-join fits chunk_size.

    Over-long single lines are hard-split so every chunk stays deliverable.
    """
    chunks: List[List[str]] = []
    current: List[str] = []
    size = 0
    for line in lines:
        pieces = [line[i : i + chunk_size] for i in range(0, len(line), chunk_size)] or [""]
        for piece in pieces:
            extra = len(piece) + (1 if current else 0)
            if current and size + extra > chunk_size:
                chunks.append(current)
                current, size = [], 0
                extra = len(piece)
            current.append(piece)
            size += extra
    if current:
        chunks.append(current)
    return chunks


def _retry_after(headers: Any, body: Any) -> Optional[float]:
    if isinstance(body, dict) and body.get("retry_after") is not None:
        try:
            return float(body["retry_after"])
        except (TypeError, ValueError):
            pass
    raw = headers.get("Retry-After") if headers is not None else None
    if raw:
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None
    return None


class WebhookSender:
    """Sends webhook payloads over a shared aiohttp session."""

    def __init__(self, *, timeout: float = 10.0, username: Optional[str] = None):
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._username = username
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def build_payload(self, content: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "content": content,
            # Log lines must never ping anyone.
            "allowed_mentions": {"parse": []},
        }
        if self._username:
            payload["username"] = self._username
        return payload

    async def send(self, url: str, content: str) -> None:
        session = await self._get_session()
        try:
            async with session.post(url, json=self.build_payload(content)) as resp:
                if resp.status == 429:
                    try:
                        body = await resp.json(content_type=None)
                    except Exception:
                        body = None
                    raise DeliveryRateLimited(retry_after=_retry_after(resp.headers, body))
                if resp.status >= 400:
                    text = await resp.text()
                    raise DeliveryFailed(f"webhook returned HTTP {resp.status}: {text[:200]}", status=resp.status)
        except asyncio.TimeoutError as e:
            raise DeliveryFailed("webhook request timed out") from e
        except aiohttp.ClientError as e:
            raise DeliveryFailed(f"webhook request failed: {e}") from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
