"""Client, extensions and slash modules: where declarations become live.

Key classes:
    Client: EventEmitter owning a SlashClient; merges its declarations
        on construction.
    Extension: Bundle of listeners and commands attached to an existing
        Client; can be unloaded again.
    SlashModule: Commands-only bundle loaded into a SlashClient.
    SlashClient: Holds the command descriptors, the resolved forest
        and the dispatcher for one client.

Key functions:
    merge_declarations: Drains a class's declarations into an emitter
        and a SlashClient, binding handlers to the owning instance.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from .annotations import DeclarationRegistry, declarations
from .commands.dispatch import CommandDispatcher
from .commands.interaction import APPLICATION_COMMAND, Interaction, Responder
from .commands.models import CommandForest, SlashDescriptor
from .commands.payload import forest_to_payloads, payloads_by_scope
from .commands.registrar import CommandRegistrar, sync_commands
from .commands.tree import build_command_forest
from .config import Config, get_config
from .events import EventEmitter
from .exceptions import ConfigurationError

logger = structlog.get_logger("slashwire.client")


def _bind(handler: Any, owner: Any) -> Callable[..., Any]:
    """Bind a declared function to the instance that owns it."""
    getter = getattr(handler, "__get__", None)
    if getter is None:
        return handler
    return getter(owner, type(owner))


@dataclass
class MergeResult:
    """What one merge attached, so it can be detached again."""
    listeners: List[Tuple[str, Callable[..., Any]]] = field(default_factory=list)
    commands: List[SlashDescriptor] = field(default_factory=list)
    modules: List["SlashModule"] = field(default_factory=list)


def merge_declarations(
    owner: Any,
    emitter: EventEmitter,
    slash: Optional["SlashClient"],
    registry: DeclarationRegistry = declarations,
) -> MergeResult:
    """Attach everything declared on ``type(owner)`` to live structures.

    Event handlers are subscribed on ``emitter`` bound to ``owner``;
    command descriptors (handlers bound to ``owner``) and declared
    slash modules are handed to ``slash``, which resolves the tree.

    Raises:
        ConfigurationError: A declared event handler is not callable, or
            the resulting command tree does not resolve.
    """
    snapshot = registry.drain(type(owner))
    result = MergeResult()

    for event_name, handler in snapshot.events.items():
        if not callable(handler) and not isinstance(handler, (staticmethod, classmethod)):
            raise ConfigurationError(
                f"Handler declared for event '{event_name}' is not callable",
                module="client",
                event=event_name,
                owner=type(owner).__qualname__,
            )
        result.listeners.append((event_name, _bind(handler, owner)))
    for event_name, listener in result.listeners:
        emitter.subscribe(event_name, listener)

    if snapshot.commands or snapshot.modules:
        if slash is None:
            raise ConfigurationError(
                "Slash commands declared on an owner without a slash client",
                module="client",
                owner=type(owner).__qualname__,
            )
        result.commands = [
            replace(desc, handler=_bind(desc.handler, owner)) for desc in snapshot.commands
        ]
        slash.add_descriptors(result.commands)
        for factory in snapshot.modules:
            module = _bind(factory, owner)()
            slash.load_module(module)
            result.modules.append(module)

    logger.info(
        "declarations_merged",
        owner=type(owner).__qualname__,
        events=len(result.listeners),
        commands=len(result.commands),
        modules=len(result.modules),
    )
    return result


class SlashModule:
    """A reusable bundle of slash commands.

    Subclass it and annotate methods with slash / subslash / groupslash.
    Load an instance with ``client.slash.load_module(module)`` or
    return one from a ``@slash_module()`` method of a Client.
    """

    name: str = ""

    def __init__(self):
        snapshot = declarations.drain(type(self))
        if snapshot.events:
            raise ConfigurationError(
                "SlashModule cannot declare event listeners",
                module="client",
                owner=type(self).__qualname__,
                events=sorted(snapshot.events),
            )
        self.commands: Tuple[SlashDescriptor, ...] = tuple(
            replace(desc, handler=_bind(desc.handler, self)) for desc in snapshot.commands
        )


class SlashClient:
    """Slash command state of one client.

    Every change to the descriptor list re-resolves the whole tree; a
    change that does not resolve raises and leaves the previous tree
    in place.
    """

    def __init__(self, client: "Client", enabled: bool = True,
                 default_description: Optional[str] = None):
        self.client = client
        self.enabled = enabled
        self.default_description = default_description
        self.modules: List[SlashModule] = []
        self._descriptors: List[SlashDescriptor] = []
        self._forest = CommandForest()
        self.dispatcher = CommandDispatcher(lambda: self._forest)

    @property
    def commands(self) -> Tuple[SlashDescriptor, ...]:
        return tuple(self._descriptors)

    @property
    def forest(self) -> CommandForest:
        return self._forest

    def _rebuild(self, descriptors: List[SlashDescriptor]) -> None:
        if self.default_description is None:
            forest = build_command_forest(descriptors)
        else:
            forest = build_command_forest(descriptors, self.default_description)
        self._descriptors = descriptors
        self._forest = forest

    def add_descriptors(self, descriptors: Iterable[SlashDescriptor]) -> None:
        self._rebuild(self._descriptors + list(descriptors))

    def remove_descriptors(self, descriptors: Iterable[SlashDescriptor]) -> None:
        drop = {id(d) for d in descriptors}
        self._rebuild([d for d in self._descriptors if id(d) not in drop])

    def load_module(self, module: SlashModule) -> None:
        self.add_descriptors(module.commands)
        self.modules.append(module)
        logger.info(
            "slash_module_loaded",
            module=module.name or type(module).__name__,
            commands=len(module.commands),
        )

    def unload_module(self, module: SlashModule) -> None:
        self.detach(modules=[module])

    def detach(self, descriptors: Iterable[SlashDescriptor] = (),
               modules: Iterable[SlashModule] = ()) -> None:
        """Remove descriptors and loaded modules with a single rebuild.

        Raises before anything is detached when the remaining
        descriptors do not resolve.
        """
        modules = list(modules)
        drop = list(descriptors)
        for module in modules:
            drop.extend(module.commands)
        self.remove_descriptors(drop)
        for module in modules:
            self.modules.remove(module)

    def payloads(self, guild: Optional[str] = None) -> List[Dict[str, Any]]:
        """Remote payloads for one guild scope (None = global)."""
        return forest_to_payloads(self._forest, guild)

    def payloads_by_scope(self) -> Dict[Optional[str], List[Dict[str, Any]]]:
        return payloads_by_scope(self._forest)

    async def sync(self, registrar: CommandRegistrar) -> Dict[Optional[str], List[Dict[str, Any]]]:
        """Overwrite the remote directory with the current tree."""
        return await sync_commands(self._forest, registrar)

    async def handle(self, interaction: Interaction) -> Any:
        """Dispatch ``interaction``; publishes command_error before re-raising."""
        try:
            return await self.dispatcher.dispatch(interaction)
        except Exception as e:
            logger.error(
                "command_failed",
                path=list(interaction.path),
                guild=interaction.guild_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.client.publish("command_error", interaction, e)
            raise


class Client(EventEmitter):
    """Bot client: a typed event emitter plus a slash command tree.

    Subclass it and annotate methods; the annotations are merged when
    the instance is constructed. A gateway adapter feeds events in with
    publish() and interactions with receive_interaction().

    Args:
        token: Bot token. Defaults to the configured token.
        enable_slash: Wire slash dispatch. Defaults to config.
        config: Config instance. Defaults to get_config().
        registry: Declaration registry to drain. Defaults to the global one.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        enable_slash: Optional[bool] = None,
        config: Optional[Config] = None,
        registry: DeclarationRegistry = declarations,
    ):
        super().__init__()
        self.config = config if config is not None else get_config()
        self.token = token or self.config.token or None
        self.extensions: List["Extension"] = []
        self.slash = SlashClient(
            self,
            enabled=self.config.enable_slash if enable_slash is None else enable_slash,
            default_description=self.config.default_description,
        )

        merge_declarations(self, self, self.slash, registry)

        if self.slash.enabled:
            self.subscribe("interaction_create", self.slash.handle)

    def debug(self, tag: str, msg: str) -> None:
        """Emit a debug event."""
        self.publish("debug", f"[{tag}] {msg}")

    def receive_interaction(
        self, payload: Dict[str, Any], responder: Optional[Responder] = None
    ) -> Optional[Interaction]:
        """Publish an incoming command interaction payload.

        Returns the Interaction built, or None when the payload is not
        an application command.

        Raises:
            DispatchError: A command payload without a command name;
                nothing is published.
        """
        if payload.get("type") != APPLICATION_COMMAND:
            return None
        interaction = Interaction(payload, responder)
        self.publish("interaction_create", interaction)
        return interaction


class Extension:
    """Listeners and commands contributed to an existing Client.

    Declarations are merged into ``client`` on construction with the
    extension as the owner of every handler.
    """

    name: str = ""

    def __init__(self, client: Client):
        self.client = client
        self._merged = merge_declarations(self, client, client.slash)
        client.extensions.append(self)

    def unload(self) -> None:
        """Detach every listener, command and module this extension added.

        The command tree is rebuilt first; if it does not resolve (another
        extension still hangs sub-commands off one of these roots) the
        error propagates and the extension stays fully loaded.
        """
        if self._merged.commands or self._merged.modules:
            self.client.slash.detach(self._merged.commands, self._merged.modules)
        for event_name, listener in self._merged.listeners:
            self.client.unsubscribe(event_name, listener)
        self.client.extensions.remove(self)
        logger.info("extension_unloaded", extension=self.name or type(self).__name__)
