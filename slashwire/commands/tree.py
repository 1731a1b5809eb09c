"""Resolution of flat slash descriptors into a three-level command tree.

Descriptors carry optional ``parent`` / ``group`` references. The
resolver turns them into a forest of root commands, each holding
direct sub-commands and/or groups of sub-commands, scoped per guild.

Resolution never stops at the first problem: every descriptor is
examined and each problem becomes an error in the returned
Resolution, so an author sees all broken declarations at once.
build_command_forest() is the strict entry point used during client
construction and raises the first error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import structlog

from ..config import DEFAULT_DESCRIPTION
from ..exceptions import ConfigurationError, NameCollisionError, UnresolvedParentError
from .models import (
    COMMAND_NAME_PATTERN,
    CommandForest,
    CommandKind,
    CommandNode,
    SlashDescriptor,
    describe_handler,
    handler_label,
)

logger = structlog.get_logger("slashwire.commands")


def _scope_label(guild: Optional[str]) -> str:
    return f"guild {guild}" if guild is not None else "global scope"


@dataclass
class Resolution:
    """Outcome of resolving a descriptor sequence."""
    forest: CommandForest = field(default_factory=CommandForest)
    errors: List[ConfigurationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise the first resolution error, logging any others."""
        if not self.errors:
            return
        for extra in self.errors[1:]:
            logger.error("command_tree_error", error=str(extra))
        raise self.errors[0]


class CommandTreeResolver:
    """Builds a CommandForest from SlashDescriptors in three passes.

    Pass 1 creates roots, pass 2 attaches direct sub-commands, pass 3
    attaches grouped sub-commands, creating groups on first use.
    Declaration order is preserved among siblings.

    Args:
        default_description: Description for nodes whose descriptor
            and handler docstring provide none.
    """

    def __init__(self, default_description: str = DEFAULT_DESCRIPTION):
        self.default_description = default_description

    def resolve(self, descriptors: Iterable[SlashDescriptor]) -> Resolution:
        result = Resolution()
        ordered = list(descriptors)
        valid = [d for d in ordered if self._check_names(d, result)]

        for desc in valid:
            if desc.parent is None:
                self._add_root(desc, result)
        for desc in valid:
            if desc.parent is not None and desc.group is None:
                self._add_sub_command(desc, result)
        for desc in valid:
            if desc.parent is not None and desc.group is not None:
                self._add_grouped_sub_command(desc, result)

        for root in result.forest:
            if root.handler is not None and root.children:
                logger.warning(
                    "root_handler_unreachable",
                    command=root.name,
                    guild=root.guild,
                    handler=handler_label(root.handler),
                )

        logger.debug(
            "command_tree_resolved",
            descriptors=len(ordered),
            roots=len(result.forest),
            errors=len(result.errors),
        )
        return result

    def _check_names(self, desc: SlashDescriptor, result: Resolution) -> bool:
        for part in desc.path:
            if not COMMAND_NAME_PATTERN.match(part):
                result.errors.append(ConfigurationError(
                    f"Invalid command name '{part}': use 1-32 lowercase letters, "
                    "digits, '-' or '_'",
                    module="commands.tree",
                    command=desc.name,
                    handler=handler_label(desc.handler),
                ))
                return False
        return True

    def _describe(self, desc: SlashDescriptor) -> str:
        return desc.description or describe_handler(desc.handler) or self.default_description

    def _leaf(self, desc: SlashDescriptor) -> CommandNode:
        return CommandNode(
            name=desc.name,
            kind=CommandKind.SUB_COMMAND,
            guild=desc.guild,
            handler=desc.handler,
            description=self._describe(desc),
        )

    def _add_root(self, desc: SlashDescriptor, result: Resolution) -> None:
        key = (desc.guild, desc.name)
        existing = result.forest.roots.get(key)
        if existing is not None:
            result.errors.append(NameCollisionError(
                f"Root command '{desc.name}' declared twice in {_scope_label(desc.guild)}: "
                f"{handler_label(existing.handler)} and {handler_label(desc.handler)}",
                name=desc.name,
                guild=desc.guild,
                existing=handler_label(existing.handler),
                duplicate=handler_label(desc.handler),
            ))
            return
        result.forest.roots[key] = CommandNode(
            name=desc.name,
            kind=CommandKind.ROOT,
            guild=desc.guild,
            handler=desc.handler,
            description=self._describe(desc),
        )

    def _find_root(self, desc: SlashDescriptor, result: Resolution) -> Optional[CommandNode]:
        root = result.forest.get(desc.parent, desc.guild)
        if root is None:
            result.errors.append(UnresolvedParentError(
                f"Sub-command '{desc.name}' references missing root command "
                f"'{desc.parent}' in {_scope_label(desc.guild)}",
                parent=desc.parent,
                guild=desc.guild,
                name=desc.name,
            ))
        return root

    def _attach(self, parent: CommandNode, node: CommandNode, desc: SlashDescriptor,
                result: Resolution) -> None:
        clash = parent.child(node.name)
        if clash is not None:
            result.errors.append(NameCollisionError(
                f"'{node.name}' declared twice under '{parent.name}' in "
                f"{_scope_label(desc.guild)}: {handler_label(clash.handler)} "
                f"({clash.kind.value}) and {handler_label(desc.handler)}",
                name=node.name,
                guild=desc.guild,
                existing=handler_label(clash.handler),
                duplicate=handler_label(desc.handler),
                parent=parent.name,
            ))
            return
        parent.children.append(node)

    def _add_sub_command(self, desc: SlashDescriptor, result: Resolution) -> None:
        root = self._find_root(desc, result)
        if root is not None:
            self._attach(root, self._leaf(desc), desc, result)

    def _add_grouped_sub_command(self, desc: SlashDescriptor, result: Resolution) -> None:
        root = self._find_root(desc, result)
        if root is None:
            return
        group = root.child(desc.group)
        if group is None:
            group = CommandNode(
                name=desc.group,
                kind=CommandKind.GROUP,
                guild=desc.guild,
                description=self.default_description,
            )
            root.children.append(group)
        elif group.kind is not CommandKind.GROUP:
            result.errors.append(NameCollisionError(
                f"Group '{desc.group}' under '{root.name}' collides with sub-command "
                f"{handler_label(group.handler)} in {_scope_label(desc.guild)}",
                name=desc.group,
                guild=desc.guild,
                existing=handler_label(group.handler),
                duplicate=handler_label(desc.handler),
                parent=root.name,
            ))
            return
        self._attach(group, self._leaf(desc), desc, result)


def resolve_commands(
    descriptors: Iterable[SlashDescriptor],
    default_description: str = DEFAULT_DESCRIPTION,
) -> Resolution:
    """Resolve descriptors into a forest plus the list of resolution errors."""
    return CommandTreeResolver(default_description).resolve(descriptors)


def build_command_forest(
    descriptors: Iterable[SlashDescriptor],
    default_description: str = DEFAULT_DESCRIPTION,
) -> CommandForest:
    """Resolve descriptors, raising the first ConfigurationError found."""
    result = resolve_commands(descriptors, default_description)
    result.raise_for_errors()
    return result.forest
