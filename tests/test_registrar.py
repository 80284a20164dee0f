from __future__ import annotations

import asyncio
import textwrap

import discord
from discord import app_commands

from relaybot.registrar import CommandRegistrar, load_commands, spec_from_module


def test_builtin_commands_are_discovered():
    lines = []
    specs = load_commands(log=lines.append)

    assert [s.name for s in specs] == ["hello", "help", "info", "ping", "setjobs"]
    assert "Command ping loaded successfully." in lines
    assert all(s.description for s in specs)


def _write_package(tmp_path, name, modules):
    pkg = tmp_path / name
    pkg.mkdir()
    (pkg / "__init__.py").write_text("", encoding="utf-8")
    for mod_name, source in modules.items():
        (pkg / f"{mod_name}.py").write_text(textwrap.dedent(source), encoding="utf-8")
    return name


def test_invalid_and_broken_modules_are_skipped(tmp_path, monkeypatch):
    package = _write_package(
        tmp_path,
        "fake_cmds_a",
        {
            "good": """
                NAME = "good"
                DESCRIPTION = "works"
                async def execute(interaction, log):
                    pass
            """,
            "no_execute": """
                NAME = "broken"
                DESCRIPTION = "missing handler"
            """,
            "explodes": "raise RuntimeError('boom')\n",
            "_private": "NAME = 'hidden'\n",
        },
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    lines = []

    specs = load_commands(package, log=lines.append)

    assert [s.name for s in specs] == ["good"]
    assert "Invalid command structure in no_execute." in lines
    assert any(line.startswith("Error loading command from explodes: boom") for line in lines)
    assert not any("_private" in line for line in lines)


def test_duplicate_command_names_keep_the_first(tmp_path, monkeypatch):
    src = """
        NAME = "same"
        DESCRIPTION = "dup"
        async def execute(interaction, log):
            pass
    """
    package = _write_package(tmp_path, "fake_cmds_b", {"a_first": src, "b_second": src})
    monkeypatch.syspath_prepend(str(tmp_path))
    lines = []

    specs = load_commands(package, log=lines.append)

    assert [s.module.__name__ for s in specs] == ["fake_cmds_b.a_first"]
    assert any("Duplicate command name 'same'" in line for line in lines)


def test_missing_package_is_logged():
    lines = []
    assert load_commands("relaybot.no_such_package", log=lines.append) == []
    assert lines and lines[0].startswith("Error during command loading:")


def test_spec_from_module_requires_all_fields():
    import types

    mod = types.ModuleType("m")
    assert spec_from_module(mod) is None
    mod.NAME, mod.DESCRIPTION = "x", "y"
    assert spec_from_module(mod) is None

    async def execute(interaction, log):
        return None

    mod.execute = execute
    spec = spec_from_module(mod)
    assert spec is not None
    assert spec.as_dict() == {"name": "x", "description": "y"}


def test_register_adds_commands_to_tree():
    client = discord.Client(intents=discord.Intents.none())
    tree = app_commands.CommandTree(client)

    async def dispatch(interaction, spec):
        return None

    registrar = CommandRegistrar(tree, dispatch, log=lambda _m: None)
    registrar.register(load_commands(log=lambda _m: None))

    assert sorted(c.name for c in tree.get_commands()) == ["hello", "help", "info", "ping", "setjobs"]
    assert len(registrar.registered) == 5


class _FakeTree:
    def __init__(self, fail=False):
        self.fail = fail
        self.added = []

    def add_command(self, command, override=False):
        self.added.append(command)

    async def sync(self):
        if self.fail:
            raise RuntimeError("401 Unauthorized")
        return list(self.added)


def test_refresh_logs_success():
    lines = []

    async def dispatch(interaction, spec):
        return None

    registrar = CommandRegistrar(_FakeTree(), dispatch, log=lines.append)
    registrar.register(load_commands(log=lambda _m: None))

    assert asyncio.run(registrar.refresh()) is True
    assert lines == [
        "Started refreshing global (/) commands.",
        "Successfully reloaded 5 global (/) commands.",
    ]


def test_refresh_failure_is_logged_not_raised():
    lines = []

    async def dispatch(interaction, spec):
        return None

    registrar = CommandRegistrar(_FakeTree(fail=True), dispatch, log=lines.append)

    assert asyncio.run(registrar.refresh()) is False
    assert lines[-1] == "Error refreshing global (/) commands: 401 Unauthorized"
