from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from conftest import FakeFollowup, FakeResponse
from relaybot import runtime
from relaybot.commands import hello, help as help_cmd, info, ping, setjobs
from relaybot.registrar import load_commands


def make_interaction(**client_attrs):
    client = SimpleNamespace(latency=0.042, user="relaybot#0001", guilds=[1, 2], **client_attrs)
    return SimpleNamespace(
        client=client,
        user=SimpleNamespace(display_name="Ada"),
        guild=None,
        response=FakeResponse(),
        followup=FakeFollowup(),
    )


@pytest.fixture(autouse=True)
def _reset_runtime():
    yield
    runtime.set_bot(None)
    runtime.set_pipeline(None)


def test_ping_reports_latency():
    interaction = make_interaction()
    logged = []

    asyncio.run(ping.execute(interaction, logged.append))

    assert interaction.response.sent[0][0] == "Pong! (42 ms)"
    assert logged and logged[0].startswith("/ping used by")


def test_hello_uses_display_name():
    interaction = make_interaction()
    asyncio.run(hello.execute(interaction, lambda _m: None))
    assert interaction.response.sent[0][0] == "Hello, Ada!"


def test_help_lists_registered_commands():
    runtime.set_bot(SimpleNamespace(commands=load_commands(log=lambda _m: None)))
    interaction = make_interaction()

    asyncio.run(help_cmd.execute(interaction, lambda _m: None))

    content, kwargs = interaction.response.sent[0]
    assert kwargs == {"ephemeral": True}
    assert "`/ping` - " in content
    assert "`/setjobs` - Select the jobs which apply to you" in content


def test_help_without_bot():
    assert help_cmd.help_text() == "No commands are registered."


def test_info_includes_log_channel_state(make_pipeline):
    from conftest import FakeSender

    pipeline = make_pipeline(FakeSender(), channels={"bot": "https://discord.test/hook", "site": None})
    runtime.set_pipeline(pipeline)

    lines = info.info_lines(make_interaction())

    assert lines[0] == "**relaybot#0001**"
    assert "Servers: 2" in lines
    assert "Log channel `bot`: webhook, 0 pending" in lines
    assert "Log channel `site`: local only, 0 pending" in lines


def test_setjobs_sends_select_menu():
    interaction = make_interaction()

    async def scenario():
        await setjobs.execute(interaction, lambda _m: None)

    asyncio.run(scenario())

    content, kwargs = interaction.response.sent[0]
    assert content == "Choose your Jobs"
    select = kwargs["view"].children[0]
    assert select.custom_id == "jobs"
    assert select.min_values == 1
    assert select.max_values == 3
    assert [o.value for o in select.options] == ["bulbasaur", "charmander", "squirtle"]


def test_runtime_log_routes_to_channels(make_pipeline):
    from conftest import FakeSender

    pipeline = make_pipeline(FakeSender(), channels={"bot": None, "site": None})
    runtime.set_pipeline(pipeline)

    runtime.log("bot line")
    runtime.log("site line", site=True)

    text = pipeline._sink.path.read_text(encoding="utf-8")
    assert "bot line" in text
    assert "site line" in text


def test_runtime_log_without_pipeline_uses_logging(caplog):
    import logging

    with caplog.at_level(logging.INFO, logger="relaybot.runtime"):
        runtime.log("no pipeline yet")
    assert "no pipeline yet" in caplog.text
