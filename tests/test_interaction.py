"""Tests for interaction parsing and command dispatch."""

from unittest.mock import AsyncMock

import pytest

from slashwire.commands.dispatch import CommandDispatcher
from slashwire.commands.interaction import Interaction, parse_command_path
from slashwire.commands.models import SlashDescriptor
from slashwire.commands.tree import build_command_forest
from slashwire.exceptions import DispatchError, UnknownCommandError


def _payload(data, guild_id=None):
    payload = {
        "id": 9001,
        "type": 2,
        "token": "interaction-token",
        "channel_id": "555",
        "member": {"user": {"id": "777"}},
        "data": data,
    }
    if guild_id is not None:
        payload["guild_id"] = guild_id
    return payload


GROUPED = {
    "name": "cmd",
    "options": [{
        "type": 2,
        "name": "g",
        "options": [{
            "type": 1,
            "name": "b",
            "options": [{"type": 3, "name": "query", "value": "lofi"}],
        }],
    }],
}


def test_parse_grouped_sub_command():
    path, options = parse_command_path(GROUPED)
    assert path == ("cmd", "g", "b")
    assert options == [{"type": 3, "name": "query", "value": "lofi"}]


def test_parse_plain_command_keeps_value_options():
    path, options = parse_command_path({
        "name": "play",
        "options": [{"type": 3, "name": "track", "value": "x"}],
    })
    assert path == ("play",)
    assert options[0]["name"] == "track"


def test_interaction_exposes_command_chain():
    interaction = Interaction(_payload(GROUPED, guild_id=123))
    assert interaction.name == "cmd"
    assert interaction.parent == "cmd"
    assert interaction.group == "g"
    assert interaction.sub_command == "b"
    assert interaction.options == {"query": "lofi"}
    assert interaction.guild_id == "123"
    assert interaction.user_id == "777"
    assert interaction.id == "9001"


def test_interaction_direct_sub_command_has_no_group():
    interaction = Interaction(_payload({
        "name": "cmd",
        "options": [{"type": 1, "name": "a"}],
    }))
    assert interaction.path == ("cmd", "a")
    assert interaction.group is None
    assert interaction.sub_command == "a"


@pytest.mark.asyncio
async def test_respond_forwards_payload_verbatim():
    responder = AsyncMock()
    interaction = Interaction(_payload({"name": "ping"}), responder)
    body = {"content": "pong", "flags": 64}

    await interaction.respond(body)

    responder.assert_awaited_once_with(interaction, body)
    assert interaction.responded
    assert interaction.responses == [body]


def _dispatcher(*descriptors):
    forest = build_command_forest(descriptors)
    return CommandDispatcher(lambda: forest)


@pytest.mark.asyncio
async def test_dispatch_routes_to_grouped_handler():
    seen = []

    async def b(interaction):
        seen.append(interaction.group)
        return "done"

    dispatcher = _dispatcher(
        SlashDescriptor(name="cmd", handler=lambda i: None),
        SlashDescriptor(name="b", parent="cmd", group="g", handler=b),
    )
    result = await dispatcher.dispatch(Interaction(_payload(GROUPED)))
    assert result == "done"
    assert seen == ["g"]


@pytest.mark.asyncio
async def test_dispatch_supports_sync_handlers():
    dispatcher = _dispatcher(SlashDescriptor(name="ping", handler=lambda i: "pong"))
    assert await dispatcher.dispatch(Interaction(_payload({"name": "ping"}))) == "pong"


@pytest.mark.asyncio
async def test_guild_command_shadows_global():
    dispatcher = _dispatcher(
        SlashDescriptor(name="ping", handler=lambda i: "global"),
        SlashDescriptor(name="ping", guild="123", handler=lambda i: "guild"),
    )
    assert await dispatcher.dispatch(Interaction(_payload({"name": "ping"}, guild_id=123))) == "guild"
    assert await dispatcher.dispatch(Interaction(_payload({"name": "ping"}, guild_id=456))) == "global"


@pytest.mark.asyncio
async def test_unknown_command_raises():
    dispatcher = _dispatcher(SlashDescriptor(name="ping", handler=lambda i: None))
    with pytest.raises(UnknownCommandError) as exc_info:
        await dispatcher.dispatch(Interaction(_payload({"name": "nope"})))
    assert exc_info.value.path == ("nope",)


@pytest.mark.asyncio
async def test_group_node_itself_is_not_invocable():
    dispatcher = _dispatcher(
        SlashDescriptor(name="cmd", handler=lambda i: None),
        SlashDescriptor(name="b", parent="cmd", group="g", handler=lambda i: None),
    )
    interaction = Interaction(_payload({
        "name": "cmd",
        "options": [{"type": 2, "name": "g", "options": []}],
    }))
    with pytest.raises(UnknownCommandError):
        await dispatcher.dispatch(interaction)


def test_parse_rejects_missing_names():
    with pytest.raises(DispatchError, match="no command name"):
        parse_command_path({})
    with pytest.raises(DispatchError, match="Unnamed sub-command"):
        parse_command_path({"name": "cmd", "options": [{"type": 1}]})
