# SPDX-License-Identifier: GPL-3.0-only
"""
Slash command handlers.

Each module here is picked up by ``relaybot.registrar.load_commands``. A
handler module exposes ``NAME``, ``DESCRIPTION`` and
``async def execute(interaction, log)``; ``log`` records a line on the bot
log channel.
"""
