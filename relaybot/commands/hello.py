# SPDX-License-Identifier: GPL-3.0-only
"""/hello: greet the caller."""

from __future__ import annotations

NAME = "hello"
DESCRIPTION = "Says hello"


async def execute(interaction, log) -> None:
    name = getattr(interaction.user, "display_name", None) or str(interaction.user)
    await interaction.response.send_message(f"Hello, {name}!")
    log(f"/hello used by {interaction.user}")
