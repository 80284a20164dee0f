# SPDX-License-Identifier: GPL-3.0-only
"""
Discord bot for relaybot.

Registers the slash commands found in ``relaybot.commands``, routes
interactions to them, runs the site server as a child process, and sends all
operational log lines through the webhook log pipeline.
"""

import asyncio
import logging
import sys
from typing import Any, List, Optional

import discord
from discord import app_commands

from .config import BotConfig, load_config
from .errors import LocalSinkWriteFailed
from .log_pipeline import BOT, LogPipeline
from .log_sink import LocalLogSink
from .registrar import CommandRegistrar, CommandSpec, load_commands
from .runtime import set_bot as _set_runtime_bot, set_pipeline as _set_runtime_pipeline
from .supervisor import ProcessSupervisor
from .webhook import WebhookSender

logger = logging.getLogger(__name__)

ERROR_REPLY = "An error occurred while processing the command."


class RelayBot:
    """Discord client that dispatches slash commands and forwards its logs to webhooks."""

    def __init__(
        self,
        config: Optional[BotConfig] = None,
        *,
        pipeline: Optional[LogPipeline] = None,
        sink: Optional[LocalLogSink] = None,
        commands_package: str = "relaybot.commands",
    ):
        """Initialize the bot.

        Args:
            config: bot configuration (loaded from the environment if omitted)
            pipeline: log pipeline (built from config if omitted)
            sink: local log sink (opened under config.logs_dir if omitted)
            commands_package: package scanned for command handler modules
        """
        self.config = config or load_config()
        self.token = self.config.token
        if not self.token:
            raise ValueError("Discord token required. Set TOKEN (or DISCORD_TOKEN) in the environment or .env")

        self.sink = sink or LocalLogSink(self.config.logs_dir)
        if sink is None:
            self.sink.open()
        self.pipeline = pipeline or LogPipeline.from_config(
            self.config,
            self.sink,
            WebhookSender(timeout=self.config.send_timeout_sec),
        )
        _set_runtime_pipeline(self.pipeline)

        self._commands_package = commands_package
        self.commands: List[CommandSpec] = []

        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True

        self.client = discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.client)
        self.registrar = CommandRegistrar(self.tree, self.dispatch, log=self.log)
        self.site_server = ProcessSupervisor(self.config.site_server_cmd)
        self._started_up = False

        _set_runtime_bot(self)
        self._setup_handlers()

    def log(self, message: str) -> None:
        self.pipeline.record(BOT, message)

    def _setup_handlers(self) -> None:
        """Set up Discord event handlers."""

        @self.client.event
        async def on_ready():
            """Called when the client connects (and on every reconnect)."""
            if self._started_up:
                logger.info(f"Reconnected as {self.client.user}")
                return
            self._started_up = True
            try:
                await self.on_startup()
            except LocalSinkWriteFailed:
                raise
            except Exception as e:
                self.log(f"Error during startup: {e}")

    async def on_startup(self) -> None:
        self.log(f"Logged in as {self.client.user}")

        self.commands = load_commands(self._commands_package, log=self.log)
        self.registrar.register(self.commands)
        await self.registrar.refresh()

        await self.site_server.start()

    async def dispatch(self, interaction: Any, spec: CommandSpec) -> None:
        """Run one command handler, reporting failures to the log and the user."""
        try:
            await spec.execute(interaction, self.log)
        except LocalSinkWriteFailed:
            raise
        except Exception as e:
            self.log(f'Error handling command "{spec.name}": {e}')
            await self._reply_error(interaction)

    async def _reply_error(self, interaction: Any) -> None:
        try:
            if interaction.response.is_done():
                await interaction.followup.send(ERROR_REPLY, ephemeral=True)
            else:
                await interaction.response.send_message(ERROR_REPLY, ephemeral=True)
        except Exception as e:
            logger.warning(f"Failed to send error reply: {e}")

    async def start(self) -> None:
        """Connect to Discord and run until the client closes."""
        logger.info("Starting Discord bot...")
        await self.client.start(self.token)

    async def stop(self) -> None:
        """Stop the site server, disconnect, and flush outstanding log lines."""
        logger.info("Stopping Discord bot...")
        try:
            await self.site_server.stop()
        except Exception as e:
            logger.warning(f"Site server stop failed: {e}")

        if not self.client.is_closed():
            await self.client.close()
        _set_runtime_bot(None)

        await self.pipeline.close()
        _set_runtime_pipeline(None)
        self.sink.close()


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # discord.py is chatty at INFO about gateway events.
    logging.getLogger("discord").setLevel(max(logging.WARNING, logging.getLogger().level))


async def main() -> int:
    """Main entry point for the Discord bot."""
    config = load_config()
    setup_logging(config.log_level)

    if not config.token:
        print("Error: TOKEN environment variable not set")
        print("Get your bot token from: https://discord.com/developers/applications")
        return 1

    bot = RelayBot(config)
    try:
        await bot.start()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        await bot.stop()
    return 0


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
