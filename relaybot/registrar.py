# SPDX-License-Identifier: GPL-3.0-only
"""
Slash-command discovery and registration.

Every module in ``relaybot.commands`` is a command handler when it exposes:

    NAME: str
    DESCRIPTION: str
    async def execute(interaction, log) -> None

Commands are attached to a discord.py CommandTree and synced globally.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Awaitable, Callable, List, Optional

import discord
from discord import app_commands

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]
Dispatcher = Callable[[Any, "CommandSpec"], Awaitable[None]]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    description: str
    module: ModuleType

    @property
    def execute(self) -> Callable[..., Awaitable[None]]:
        return self.module.execute

    def as_dict(self) -> dict:
        return {"name": self.name, "description": self.description}


def spec_from_module(module: ModuleType) -> Optional[CommandSpec]:
    name = getattr(module, "NAME", None)
    description = getattr(module, "DESCRIPTION", None)
    execute = getattr(module, "execute", None)
    if not isinstance(name, str) or not name or not isinstance(description, str) or not callable(execute):
        return None
    return CommandSpec(name=name, description=description, module=module)


def load_commands(package: str = "relaybot.commands", *, log: LogFn = logger.info) -> List[CommandSpec]:
    """Import every handler module in ``package``; invalid modules are logged and skipped."""
    try:
        pkg = importlib.import_module(package)
    except ImportError as e:
        log(f"Error during command loading: {e}")
        return []

    specs: List[CommandSpec] = []
    seen: set[str] = set()
    for info in sorted(pkgutil.iter_modules(pkg.__path__), key=lambda m: m.name):
        if info.name.startswith("_"):
            continue
        try:
            module = importlib.import_module(f"{package}.{info.name}")
        except Exception as e:
            log(f"Error loading command from {info.name}: {e}")
            continue
        spec = spec_from_module(module)
        if spec is None:
            log(f"Invalid command structure in {info.name}.")
            continue
        if spec.name in seen:
            log(f"Duplicate command name '{spec.name}' in {info.name}; skipped.")
            continue
        seen.add(spec.name)
        specs.append(spec)
        log(f"Command {info.name} loaded successfully.")
    return specs


class CommandRegistrar:
    """Attaches CommandSpecs to a CommandTree and pushes them to Discord."""

    def __init__(self, tree: Any, dispatch: Dispatcher, *, log: LogFn = logger.info):
        self.tree = tree
        self._dispatch = dispatch
        self._log = log
        self.registered: List[CommandSpec] = []

    def _make_command(self, spec: CommandSpec):
        async def _callback(interaction: discord.Interaction) -> None:
            await self._dispatch(interaction, spec)

        return app_commands.Command(name=spec.name, description=spec.description, callback=_callback)

    def register(self, specs: List[CommandSpec]) -> List[CommandSpec]:
        for spec in specs:
            try:
                self.tree.add_command(self._make_command(spec), override=True)
            except Exception as e:
                self._log(f"Error registering command {spec.name}: {e}")
                continue
            self.registered.append(spec)
        return self.registered

    async def refresh(self) -> bool:
        """Sync global (/) commands. Failures are logged, never raised."""
        self._log("Started refreshing global (/) commands.")
        try:
            synced = await self.tree.sync()
        except Exception as e:
            self._log(f"Error refreshing global (/) commands: {e}")
            return False
        self._log(f"Successfully reloaded {len(synced)} global (/) commands.")
        return True
