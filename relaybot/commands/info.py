# SPDX-License-Identifier: GPL-3.0-only
"""/info: basic facts about the bot and where it is running."""

from __future__ import annotations

import platform

import discord

from ..runtime import get_pipeline

NAME = "info"
DESCRIPTION = "Shows information about the bot"


def info_lines(interaction) -> list[str]:
    client = interaction.client
    lines = [
        f"**{client.user}**",
        f"Servers: {len(client.guilds)}",
        f"Python {platform.python_version()} / discord.py {discord.__version__}",
    ]
    if interaction.guild is not None:
        lines.append(f"This server: {interaction.guild.name} ({interaction.guild.member_count} members)")
    pipeline = get_pipeline()
    if pipeline is not None:
        for name, st in pipeline.stats().items():
            remote = "webhook" if st["remote_enabled"] else "local only"
            lines.append(f"Log channel `{name}`: {remote}, {st['pending']} pending")
    return lines


async def execute(interaction, log) -> None:
    await interaction.response.send_message("\n".join(info_lines(interaction)))
    log(f"/info used by {interaction.user}")
