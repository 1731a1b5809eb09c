"""Routing of incoming interactions to resolved command handlers."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Optional

import structlog

from ..exceptions import UnknownCommandError
from .interaction import Interaction
from .models import CommandForest, CommandNode, handler_label

logger = structlog.get_logger("slashwire.commands")


class CommandDispatcher:
    """Finds the terminal node for an interaction and runs its handler.

    Guild-scoped commands shadow global ones of the same path, matching
    how the client UI presents them.

    Args:
        forest: Callable returning the current CommandForest. The
            forest is rebuilt when extensions add commands, so the
            dispatcher never caches it.
    """

    def __init__(self, forest: Callable[[], CommandForest]):
        self._forest = forest

    def find(self, interaction: Interaction) -> Optional[CommandNode]:
        forest = self._forest()
        scopes = [interaction.guild_id, None] if interaction.guild_id is not None else [None]
        for guild in scopes:
            node = forest.find(interaction.path, guild)
            if node is not None and node.is_terminal and node.handler is not None:
                return node
        return None

    async def dispatch(self, interaction: Interaction) -> Any:
        """Invoke the handler for ``interaction`` and return its result.

        Raises:
            UnknownCommandError: No terminal handler matches the path.
        """
        node = self.find(interaction)
        if node is None:
            logger.warning(
                "unknown_command",
                path=list(interaction.path),
                guild=interaction.guild_id,
            )
            raise UnknownCommandError(
                f"No handler for /{' '.join(interaction.path)}",
                path=interaction.path,
                guild=interaction.guild_id,
            )

        logger.debug(
            "command_dispatch",
            path=list(interaction.path),
            guild=interaction.guild_id,
            handler=handler_label(node.handler),
        )
        result = node.handler(interaction)
        if inspect.isawaitable(result):
            result = await result
        return result
