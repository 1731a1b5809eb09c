"""slashwire - declarative event and slash command registration for bot clients."""

from .annotations import (
    DeclarationRegistry,
    DeclarationSnapshot,
    PartialDescriptor,
    declarations,
    event,
    groupslash,
    slash,
    slash_module,
    subslash,
)
from .client import Client, Extension, SlashClient, SlashModule, merge_declarations
from .commands import Interaction, SlashDescriptor
from .events import EVENT_SIGNATURES, EventEmitter
from .exceptions import (
    ConfigurationError,
    NameCollisionError,
    SlashwireError,
    UnresolvedParentError,
)

__version__ = "0.3.0"

__all__ = [
    "Client",
    "Extension",
    "SlashClient",
    "SlashModule",
    "merge_declarations",
    "event",
    "slash",
    "subslash",
    "groupslash",
    "slash_module",
    "DeclarationRegistry",
    "DeclarationSnapshot",
    "PartialDescriptor",
    "declarations",
    "EventEmitter",
    "EVENT_SIGNATURES",
    "Interaction",
    "SlashDescriptor",
    "SlashwireError",
    "ConfigurationError",
    "NameCollisionError",
    "UnresolvedParentError",
]
