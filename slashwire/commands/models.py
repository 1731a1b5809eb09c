"""Domain models for the slash command layer.

Descriptors (flat, as declared) and nodes (resolved tree) are plain
dataclasses. The remote payload schema is a set of Pydantic models
so the JSON submitted to the command directory is validated and
serialized in one place.

Descriptor / tree types:
    SlashDescriptor, CommandKind, CommandNode, CommandForest

Remote schema:
    SlashCommandOptionType, SlashCommandOption, SlashCommandPayload
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..exceptions import ConfigurationError

# Lowercase names as accepted by the remote command directory
COMMAND_NAME_PATTERN = re.compile(r"^[-_a-z0-9]{1,32}$")

MAX_DESCRIPTION_LENGTH = 100

Handler = Callable[..., Any]


def handler_label(handler: Optional[Handler]) -> str:
    """Qualified name of a handler for error messages and logs."""
    if handler is None:
        return "<none>"
    func = getattr(handler, "__func__", handler)
    return getattr(func, "__qualname__", None) or repr(handler)


def describe_handler(handler: Optional[Handler]) -> Optional[str]:
    """First docstring line of a handler, if it has one."""
    doc = getattr(handler, "__doc__", None)
    if not doc:
        return None
    first = doc.strip().splitlines()[0].strip()
    return first or None


@dataclass(frozen=True)
class SlashDescriptor:
    """A slash command as declared, before tree resolution.

    Attributes:
        name: Command, sub-command or grouped sub-command name.
        handler: Callable invoked with the Interaction.
        guild: Guild scope; None registers globally.
        parent: Root command name for sub-commands.
        group: Group name for grouped sub-commands (requires parent).
        description: Optional text shown by the client UI.
    """
    name: str
    handler: Handler
    guild: Optional[str] = None
    parent: Optional[str] = None
    group: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        if self.group is not None and self.parent is None:
            raise ConfigurationError(
                f"Group '{self.group}' declared without a parent command",
                module="commands.models",
                command=self.name,
                group=self.group,
            )

    @property
    def path(self) -> Tuple[str, ...]:
        """Invocation path, e.g. ("cmd", "grp", "sub")."""
        return tuple(p for p in (self.parent, self.group, self.name) if p is not None)


class CommandKind(str, Enum):
    """Position of a node in the three-level command tree."""
    ROOT = "root"
    GROUP = "group"
    SUB_COMMAND = "sub_command"


@dataclass
class CommandNode:
    """A node of the resolved command tree.

    Roots may hold groups and sub-commands, groups hold only
    sub-commands, and sub-commands are always terminal.
    """
    name: str
    kind: CommandKind
    guild: Optional[str] = None
    handler: Optional[Handler] = None
    description: Optional[str] = None
    children: List["CommandNode"] = field(default_factory=list)

    def child(self, name: str) -> Optional["CommandNode"]:
        for node in self.children:
            if node.name == name:
                return node
        return None

    @property
    def is_terminal(self) -> bool:
        return not self.children

    def walk(self, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], "CommandNode"]]:
        """Yield (path, node) for this node and all descendants, depth first."""
        path = prefix + (self.name,)
        yield path, self
        for node in self.children:
            yield from node.walk(path)


@dataclass
class CommandForest:
    """Resolved root commands, keyed by (guild scope, name) in declaration order."""
    roots: Dict[Tuple[Optional[str], str], CommandNode] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.roots)

    def __iter__(self) -> Iterator[CommandNode]:
        return iter(self.roots.values())

    def get(self, name: str, guild: Optional[str] = None) -> Optional[CommandNode]:
        return self.roots.get((guild, name))

    def scopes(self) -> List[Optional[str]]:
        """Distinct guild scopes in first-seen order (None = global)."""
        seen: List[Optional[str]] = []
        for guild, _ in self.roots:
            if guild not in seen:
                seen.append(guild)
        return seen

    def in_scope(self, guild: Optional[str]) -> List[CommandNode]:
        return [node for (g, _), node in self.roots.items() if g == guild]

    def find(self, path: Tuple[str, ...], guild: Optional[str] = None) -> Optional[CommandNode]:
        """Look up a node by invocation path within one guild scope."""
        if not path:
            return None
        node = self.get(path[0], guild)
        for part in path[1:]:
            if node is None:
                return None
            node = node.child(part)
        return node


# ---------------------------------------------------------------------------
# Remote command directory schema
# ---------------------------------------------------------------------------

class SlashCommandOptionType(IntEnum):
    """Option type discriminator of the remote command API."""
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8


class SlashCommandOption(BaseModel):
    """One entry of a command's ``options`` list."""
    name: str
    description: str = Field(max_length=MAX_DESCRIPTION_LENGTH)
    type: SlashCommandOptionType
    options: Optional[List["SlashCommandOption"]] = None


class SlashCommandPayload(BaseModel):
    """Body submitted to the remote directory for one root command."""
    name: str
    description: str = Field(max_length=MAX_DESCRIPTION_LENGTH)
    options: List[SlashCommandOption] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


SlashCommandOption.model_rebuild()
