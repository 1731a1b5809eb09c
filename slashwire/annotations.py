"""Declarative handler annotations and the registry that collects them.

Decorators mark methods of a Client, Extension or SlashModule subclass
as event listeners or slash commands::

    class MusicBot(Client):
        @event()
        def ready(self):
            ...

        @slash(description="Play a track")
        async def play(self, interaction):
            ...

        @groupslash("queue", "manage", "clear")
        async def queue_clear(self, interaction):
            ...

Nothing is recorded when the decorator runs. The decorator returns a
PartialDescriptor, and Python calls its ``__set_name__`` once the class
body has been evaluated; that is where the declaration is written to
the DeclarationRegistry under the owning class, in source order. The
class attribute is then put back to the plain function, so annotated
methods behave exactly like undecorated ones when called directly.

Stacked decorators enrich the same PartialDescriptor instead of
wrapping it, so ``@subslash("cmd")`` above ``@slash("x")`` declares a
single sub-command ``x`` of ``cmd``.

Declarations stay in a per-class buffer until the first instance of
the class is constructed. drain() then freezes them into an immutable
DeclarationSnapshot and empties the buffer; every later instance reuses
that snapshot. Constructing instances of an annotated class from
several threads at once is not supported; drain() holds a lock only so
that the buffer-to-snapshot step itself is atomic.
"""

from __future__ import annotations

import threading
import weakref
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import structlog

from .commands.models import SlashDescriptor
from .exceptions import ConfigurationError

logger = structlog.get_logger("slashwire.client")


@dataclass(frozen=True)
class DeclarationSnapshot:
    """Immutable view of everything declared on a class and its bases."""
    events: Mapping[str, Callable[..., Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    commands: Tuple[SlashDescriptor, ...] = ()
    modules: Tuple[Callable[..., Any], ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.events or self.commands or self.modules)


class _Buffer:
    """Not-yet-drained declarations of one class."""

    def __init__(self):
        self.events: Dict[str, Any] = {}
        self.commands: List[SlashDescriptor] = []
        self.modules: List[Callable[..., Any]] = []

    def __bool__(self) -> bool:
        return bool(self.events or self.commands or self.modules)


class DeclarationRegistry:
    """Class-keyed store of handler declarations.

    The record_* methods are the builder API; the decorators below
    call them, and code that prefers explicit registration can call
    them directly (for instance from ``__init_subclass__``).
    """

    def __init__(self):
        self._buffers: "weakref.WeakKeyDictionary[type, _Buffer]" = weakref.WeakKeyDictionary()
        self._own: "weakref.WeakKeyDictionary[type, DeclarationSnapshot]" = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def _buffer(self, owner: type) -> _Buffer:
        buf = self._buffers.get(owner)
        if buf is None:
            buf = self._buffers[owner] = _Buffer()
        return buf

    def record_event(self, owner: type, name: str, handler: Any) -> None:
        """Declare ``handler`` for event ``name``. The last declaration of a name wins."""
        buf = self._buffer(owner)
        if name in buf.events:
            logger.debug("event_declaration_replaced", owner=owner.__qualname__, event_name=name)
        buf.events[name] = handler

    def record_command(self, owner: type, descriptor: SlashDescriptor) -> None:
        self._buffer(owner).commands.append(descriptor)

    def record_module(self, owner: type, factory: Callable[..., Any]) -> None:
        self._buffer(owner).modules.append(factory)

    def pending(self, owner: type) -> bool:
        """Whether ``owner`` itself has declarations not yet drained."""
        return bool(self._buffers.get(owner))

    def _drain_own(self, cls: type) -> DeclarationSnapshot:
        buf = self._buffers.pop(cls, None)
        previous = self._own.get(cls)
        if not buf:
            return previous if previous is not None else DeclarationSnapshot()

        events = dict(previous.events) if previous else {}
        events.update(buf.events)
        snapshot = DeclarationSnapshot(
            events=MappingProxyType(events),
            commands=(previous.commands if previous else ()) + tuple(buf.commands),
            modules=(previous.modules if previous else ()) + tuple(buf.modules),
        )
        self._own[cls] = snapshot
        return snapshot

    def drain(self, owner: type) -> DeclarationSnapshot:
        """Freeze and return the declarations of ``owner`` and its bases.

        Base-class declarations come first; a subclass declaring the
        same event name replaces the base handler.
        """
        with self._lock:
            events: Dict[str, Any] = {}
            commands: List[SlashDescriptor] = []
            modules: List[Callable[..., Any]] = []
            for cls in reversed(owner.__mro__):
                own = self._drain_own(cls)
                events.update(own.events)
                commands.extend(own.commands)
                modules.extend(own.modules)
        return DeclarationSnapshot(
            events=MappingProxyType(events),
            commands=tuple(commands),
            modules=tuple(modules),
        )


declarations = DeclarationRegistry()


class PartialDescriptor:
    """Declaration under construction for one class member.

    Created by the first (innermost) annotation applied to a function
    and enriched in place by any annotation stacked above it.
    """

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler
        self.events: List[Optional[str]] = []
        self.slash = False
        self.name: Optional[str] = None
        self.guild: Optional[str] = None
        self.parent: Optional[str] = None
        self.group: Optional[str] = None
        self.description: Optional[str] = None
        self.module = False

    def __call__(self, *args, **kwargs):
        return self.handler(*args, **kwargs)

    def add_slash(self, name=None, guild=None, parent=None, group=None, description=None):
        if self.slash:
            # Enriching an inner annotation: only fill what is still unset
            self.parent = parent if parent is not None else self.parent
            self.group = group if group is not None else self.group
            self.name = self.name if self.name is not None else name
            self.guild = self.guild if self.guild is not None else guild
            self.description = self.description if self.description is not None else description
        else:
            self.slash = True
            self.name, self.guild = name, guild
            self.parent, self.group = parent, group
            self.description = description
        return self

    def __set_name__(self, owner: type, member_name: str) -> None:
        for event_name in self.events:
            declarations.record_event(owner, event_name or member_name, self.handler)
        if self.slash:
            declarations.record_command(owner, SlashDescriptor(
                name=self.name or member_name,
                handler=self.handler,
                guild=self.guild,
                parent=self.parent,
                group=self.group,
                description=self.description,
            ))
        if self.module:
            declarations.record_module(owner, self.handler)
        setattr(owner, member_name, self.handler)


AnnotationTarget = Union[Callable[..., Any], PartialDescriptor]


def _target(member: AnnotationTarget, annotation: str) -> PartialDescriptor:
    if isinstance(member, PartialDescriptor):
        return member
    if callable(member) or isinstance(member, (staticmethod, classmethod)):
        return PartialDescriptor(member)
    raise ConfigurationError(
        f"@{annotation} requires a function, got {type(member).__name__}",
        module="annotations",
        annotation=annotation,
    )


def event(name: Optional[str] = None):
    """Declare the decorated method as a listener of event ``name``.

    Defaults to the method name.
    """
    def binder(member: AnnotationTarget) -> PartialDescriptor:
        target = _target(member, "event")
        target.events.append(name)
        return target
    return binder


def slash(name: Optional[str] = None, guild: Optional[str] = None,
          description: Optional[str] = None):
    """Declare a root slash command."""
    def binder(member: AnnotationTarget) -> PartialDescriptor:
        return _target(member, "slash").add_slash(
            name=name, guild=guild, description=description
        )
    return binder


def subslash(parent: str, name: Optional[str] = None, guild: Optional[str] = None,
             description: Optional[str] = None):
    """Declare a sub-command of root command ``parent``."""
    def binder(member: AnnotationTarget) -> PartialDescriptor:
        return _target(member, "subslash").add_slash(
            name=name, guild=guild, parent=parent, description=description
        )
    return binder


def groupslash(parent: str, group: str, name: Optional[str] = None,
               guild: Optional[str] = None, description: Optional[str] = None):
    """Declare a sub-command inside ``group`` of root command ``parent``."""
    def binder(member: AnnotationTarget) -> PartialDescriptor:
        return _target(member, "groupslash").add_slash(
            name=name, guild=guild, parent=parent, group=group, description=description
        )
    return binder


def slash_module():
    """Declare a zero-argument method returning a SlashModule to load at construction."""
    def binder(member: AnnotationTarget) -> PartialDescriptor:
        target = _target(member, "slash_module")
        target.module = True
        return target
    return binder
