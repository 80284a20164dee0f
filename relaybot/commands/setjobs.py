# SPDX-License-Identifier: GPL-3.0-only
"""/setjobs: offer a select menu of jobs. Selections are not stored."""

from __future__ import annotations

import discord

NAME = "setjobs"
DESCRIPTION = "Select the jobs which apply to you"

JOB_OPTIONS = [
    ("Bulbasaur", "bulbasaur", "The dual-type Grass/Poison Seed Pokémon."),
    ("Charmander", "charmander", "The Fire-type Lizard Pokémon."),
    ("Squirtle", "squirtle", "The Water-type Tiny Turtle Pokémon."),
]


def build_view() -> discord.ui.View:
    select = discord.ui.Select(
        custom_id="jobs",
        placeholder="Choose the jobs that apply to you",
        min_values=1,
        max_values=len(JOB_OPTIONS),
        options=[
            discord.SelectOption(label=label, value=value, description=desc)
            for label, value, desc in JOB_OPTIONS
        ],
    )
    view = discord.ui.View(timeout=None)
    view.add_item(select)
    return view


async def execute(interaction, log) -> None:
    await interaction.response.send_message(content="Choose your Jobs", view=build_view())
    log(f"/setjobs used by {interaction.user}")
