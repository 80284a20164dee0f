# SPDX-License-Identifier: GPL-3.0-only
"""
Environment configuration for relaybot.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SITE_SERVER_CMD = "node site/serve.js"


def _truthy(raw: Optional[str]) -> bool:
    v = (raw or "").strip().lower()
    return v not in ("", "0", "false", "no", "off")


def _float(env: Mapping[str, str], name: str, default: float, *, minimum: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}; using {default}")
        return default


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    v = (env.get(name) or "").strip()
    return v or None


@dataclass
class BotConfig:
    token: Optional[str] = None
    webhook_url: Optional[str] = None
    site_webhook_url: Optional[str] = None
    logs_dir: str = "./logs"
    debounce_sec: float = 0.5
    retry_backoff_sec: float = 5.0
    send_timeout_sec: float = 10.0
    requeue_on_rate_limit: bool = True
    site_server_cmd: List[str] = field(default_factory=lambda: shlex.split(DEFAULT_SITE_SERVER_CMD))
    log_level: str = "INFO"


def load_config(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> BotConfig:
    """Build a BotConfig from ``env`` (defaults to os.environ, after loading .env)."""
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    raw_cmd = env.get("SITE_SERVER_CMD")
    site_cmd = shlex.split(DEFAULT_SITE_SERVER_CMD if raw_cmd is None else raw_cmd)

    return BotConfig(
        token=_optional(env, "TOKEN") or _optional(env, "DISCORD_TOKEN"),
        webhook_url=_optional(env, "WEBHOOK_URL"),
        site_webhook_url=_optional(env, "SITE_WEBHOOK_URL"),
        logs_dir=_optional(env, "LOGS_DIR") or "./logs",
        debounce_sec=_float(env, "LOG_DEBOUNCE_SEC", 0.5, minimum=0.0),
        retry_backoff_sec=_float(env, "LOG_RETRY_BACKOFF_SEC", 5.0, minimum=0.1),
        send_timeout_sec=_float(env, "LOG_SEND_TIMEOUT_SEC", 10.0, minimum=0.5),
        requeue_on_rate_limit=_truthy(env.get("LOG_REQUEUE_ON_RATE_LIMIT", "1")),
        site_server_cmd=site_cmd,
        log_level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
    )
