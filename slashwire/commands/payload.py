"""Translation of a resolved command forest into remote payloads.

Pure functions: no I/O, no mutation of the forest. Each root becomes
one SlashCommandPayload; groups map to SUB_COMMAND_GROUP options and
sub-commands to SUB_COMMAND options.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .models import (
    MAX_DESCRIPTION_LENGTH,
    CommandForest,
    CommandKind,
    CommandNode,
    SlashCommandOption,
    SlashCommandOptionType,
    SlashCommandPayload,
)


def _truncate(description: str) -> str:
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return description[:MAX_DESCRIPTION_LENGTH - 3] + "..."
    return description


def _option(node: CommandNode) -> SlashCommandOption:
    if node.kind is CommandKind.GROUP:
        return SlashCommandOption(
            name=node.name,
            description=_truncate(node.description or node.name),
            type=SlashCommandOptionType.SUB_COMMAND_GROUP,
            options=[_option(child) for child in node.children],
        )
    return SlashCommandOption(
        name=node.name,
        description=_truncate(node.description or node.name),
        type=SlashCommandOptionType.SUB_COMMAND,
    )


def node_to_payload(root: CommandNode) -> SlashCommandPayload:
    """Build the remote payload for a single root command."""
    return SlashCommandPayload(
        name=root.name,
        description=_truncate(root.description or root.name),
        options=[_option(child) for child in root.children],
    )


def forest_to_payloads(forest: CommandForest, guild: Optional[str] = None) -> List[Dict[str, Any]]:
    """Serialized payloads for every root in one guild scope (None = global)."""
    return [node_to_payload(root).to_dict() for root in forest.in_scope(guild)]


def payloads_by_scope(forest: CommandForest) -> Dict[Optional[str], List[Dict[str, Any]]]:
    """Serialized payloads grouped by guild scope, global scope keyed by None."""
    return {scope: forest_to_payloads(forest, scope) for scope in forest.scopes()}
