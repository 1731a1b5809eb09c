"""Slash command layer: descriptors, tree resolution, payloads, dispatch.

Provides the CommandTreeResolver that turns flat SlashDescriptors into
a CommandForest, the payload builder for the remote command directory,
the CommandDispatcher that routes Interactions to handlers, and the
registrar that submits payloads.
"""

from .dispatch import CommandDispatcher
from .interaction import Interaction, parse_command_path
from .models import (
    CommandForest,
    CommandKind,
    CommandNode,
    SlashCommandOption,
    SlashCommandOptionType,
    SlashCommandPayload,
    SlashDescriptor,
)
from .payload import forest_to_payloads, node_to_payload, payloads_by_scope
from .registrar import CommandRegistrar, HttpCommandRegistrar, sync_commands
from .tree import CommandTreeResolver, Resolution, build_command_forest, resolve_commands

__all__ = [
    # Models
    "CommandForest",
    "CommandKind",
    "CommandNode",
    "SlashCommandOption",
    "SlashCommandOptionType",
    "SlashCommandPayload",
    "SlashDescriptor",
    # Resolution
    "CommandTreeResolver",
    "Resolution",
    "build_command_forest",
    "resolve_commands",
    # Payloads and registration
    "forest_to_payloads",
    "node_to_payload",
    "payloads_by_scope",
    "CommandRegistrar",
    "HttpCommandRegistrar",
    "sync_commands",
    # Dispatch
    "CommandDispatcher",
    "Interaction",
    "parse_command_path",
]
