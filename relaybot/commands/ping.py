# SPDX-License-Identifier: GPL-3.0-only
"""/ping: round-trip check."""

from __future__ import annotations

NAME = "ping"
DESCRIPTION = "Replies with Pong! and the gateway latency"


async def execute(interaction, log) -> None:
    latency_ms = round(float(getattr(interaction.client, "latency", 0.0) or 0.0) * 1000)
    await interaction.response.send_message(f"Pong! ({latency_ms} ms)")
    log(f"/ping used by {interaction.user} ({latency_ms} ms)")
