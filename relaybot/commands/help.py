# SPDX-License-Identifier: GPL-3.0-only
"""/help: list the registered slash commands."""

from __future__ import annotations

from ..runtime import get_bot

NAME = "help"
DESCRIPTION = "Lists the available commands"


def help_text() -> str:
    bot = get_bot()
    specs = list(getattr(bot, "commands", None) or [])
    if not specs:
        return "No commands are registered."
    lines = ["**Commands**"]
    for spec in sorted(specs, key=lambda s: s.name):
        lines.append(f"`/{spec.name}` - {spec.description}")
    return "\n".join(lines)


async def execute(interaction, log) -> None:
    await interaction.response.send_message(help_text(), ephemeral=True)
    log(f"/help used by {interaction.user}")
