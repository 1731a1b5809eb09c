"""Interaction context handed to slash command handlers.

Built from a raw interaction payload as delivered by the gateway.
The transport supplies a responder coroutine; respond() forwards
whatever payload the handler passes to it, untouched.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from ..exceptions import DispatchError
from .models import SlashCommandOptionType

Responder = Callable[["Interaction", Any], Awaitable[None]]

# Interaction type for application commands in the raw payload
APPLICATION_COMMAND = 2


def _snowflake(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def parse_command_path(data: Mapping[str, Any]) -> Tuple[Tuple[str, ...], List[Dict[str, Any]]]:
    """Extract (path, leaf options) from the ``data`` of a command interaction.

    ``/cmd grp sub x:1`` arrives as a root named ``cmd`` whose single
    option is a SUB_COMMAND_GROUP ``grp`` wrapping a SUB_COMMAND ``sub``
    wrapping the value option ``x``.

    Raises:
        DispatchError: The command or a nested sub-command has no name.
    """
    if not data.get("name"):
        raise DispatchError(
            "Command interaction carries no command name",
            module="commands.interaction",
        )
    path = [data["name"]]
    options = list(data.get("options") or [])
    while len(options) == 1 and options[0].get("type") in (
        SlashCommandOptionType.SUB_COMMAND,
        SlashCommandOptionType.SUB_COMMAND_GROUP,
    ):
        nested = options[0]
        if not nested.get("name"):
            raise DispatchError(
                f"Unnamed sub-command option under /{' '.join(path)}",
                module="commands.interaction",
            )
        path.append(nested["name"])
        options = list(nested.get("options") or [])
    return tuple(path), options


class Interaction:
    """A single slash command invocation.

    Attributes:
        name: Root command name as invoked.
        group: Group name, when a grouped sub-command was invoked.
        sub_command: Sub-command name, when one was invoked.
        options: Mapping of value option name to value.
        guild_id, channel_id, user_id: Snowflakes as strings (or None).
        data: The raw interaction payload.
    """

    def __init__(self, payload: Mapping[str, Any], responder: Optional[Responder] = None):
        self.data = payload
        self.id = _snowflake(payload.get("id"))
        self.token = payload.get("token")
        self.guild_id = _snowflake(payload.get("guild_id"))
        self.channel_id = _snowflake(payload.get("channel_id"))
        user = payload.get("user") or (payload.get("member") or {}).get("user") or {}
        self.user_id = _snowflake(user.get("id"))

        self.path, leaf_options = parse_command_path(payload.get("data") or {})
        self.options: Dict[str, Any] = {
            opt["name"]: opt.get("value") for opt in leaf_options
        }
        self._responder = responder
        self.responses: List[Any] = []

    @property
    def name(self) -> str:
        return self.path[0]

    @property
    def parent(self) -> Optional[str]:
        """Root command name when a sub-command was invoked, else None."""
        return self.path[0] if len(self.path) > 1 else None

    @property
    def group(self) -> Optional[str]:
        return self.path[1] if len(self.path) == 3 else None

    @property
    def sub_command(self) -> Optional[str]:
        return self.path[-1] if len(self.path) > 1 else None

    @property
    def responded(self) -> bool:
        return bool(self.responses)

    async def respond(self, payload: Any) -> None:
        """Send ``payload`` back through the transport, verbatim."""
        self.responses.append(payload)
        if self._responder is not None:
            await self._responder(self, payload)

    def __repr__(self) -> str:
        return f"Interaction(/{' '.join(self.path)}, guild_id={self.guild_id!r})"
