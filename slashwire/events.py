"""Typed publish/subscribe facade used by clients and extensions.

Each known event name has a fixed payload shape in EVENT_SIGNATURES.
subscribe() rejects listeners that cannot accept that shape and
publish() rejects arguments that do not match it, so a listener of a
declared event never sees a malformed payload. Event names outside
the table are custom events and pass through untyped.

Dispatch is synchronous fan-out in registration order. Listener
exceptions propagate to the publisher, so a failing listener stops
the remaining listeners of that publish call. Coroutine listeners are
scheduled on the running loop and not awaited.
"""

import asyncio
import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import structlog

from .commands.interaction import Interaction
from .exceptions import ConfigurationError, EventPayloadError

logger = structlog.get_logger("slashwire.events")

Listener = Callable[..., Any]


@dataclass(frozen=True)
class EventSignature:
    """Declared positional payload of an event: ((name, type), ...)."""
    params: Tuple[Tuple[str, type], ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)

    def describe(self) -> str:
        return "(" + ", ".join(f"{n}: {t.__name__}" for n, t in self.params) + ")"


EVENT_SIGNATURES: Dict[str, EventSignature] = {
    "ready": EventSignature(),
    "resumed": EventSignature(),
    "reconnect": EventSignature(),
    "debug": EventSignature((("message", str),)),
    "raw": EventSignature((("event", str), ("payload", Mapping))),
    "interaction_create": EventSignature((("interaction", Interaction),)),
    "guild_create": EventSignature((("guild", Mapping),)),
    "guild_delete": EventSignature((("guild", Mapping),)),
    "message_create": EventSignature((("message", Mapping),)),
    "error": EventSignature((("error", BaseException),)),
    "command_error": EventSignature((("interaction", Interaction), ("error", BaseException))),
}


def log_task_exception(task: asyncio.Task):
    """Log exceptions from fire-and-forget listener tasks instead of losing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("listener_task_failed", error=str(exc), exc_type=type(exc).__name__)


def _accepts(listener: Listener, arity: int) -> bool:
    try:
        sig = inspect.signature(listener)
    except (TypeError, ValueError):
        # Some builtins expose no signature; accept them as-is
        return True
    try:
        sig.bind(*([None] * arity))
    except TypeError:
        return False
    return True


@dataclass
class _Subscription:
    listener: Listener
    once: bool = False


class EventEmitter:
    """Strictly typed wrapper over a plain multi-listener emitter.

    Args:
        signatures: Event table to enforce. Defaults to EVENT_SIGNATURES.
    """

    def __init__(self, signatures: Optional[Dict[str, EventSignature]] = None):
        self.signatures = EVENT_SIGNATURES if signatures is None else signatures
        self._listeners: Dict[str, List[_Subscription]] = {}
        self._pending: Set[asyncio.Task] = set()

    def _check_listener(self, event: str, listener: Listener) -> None:
        if not callable(listener):
            raise ConfigurationError(
                f"Listener for '{event}' is not callable",
                module="events",
                event=event,
                listener=repr(listener),
            )
        signature = self.signatures.get(event)
        if signature is not None and not _accepts(listener, signature.arity):
            raise ConfigurationError(
                f"Listener for '{event}' cannot accept payload {signature.describe()}",
                module="events",
                event=event,
                listener=getattr(listener, "__qualname__", repr(listener)),
            )

    def _check_payload(self, event: str, args: Tuple[Any, ...]) -> None:
        signature = self.signatures.get(event)
        if signature is None:
            return
        if len(args) != signature.arity:
            raise EventPayloadError(
                f"'{event}' expects {signature.arity} argument(s) "
                f"{signature.describe()}, got {len(args)}",
                event=event,
            )
        for value, (param, expected) in zip(args, signature.params):
            if not isinstance(value, expected):
                raise EventPayloadError(
                    f"'{event}' argument '{param}' must be {expected.__name__}, "
                    f"got {type(value).__name__}",
                    event=event,
                )

    def subscribe(self, event: str, listener: Listener) -> "EventEmitter":
        """Add ``listener`` for ``event``; existing listeners are kept."""
        self._check_listener(event, listener)
        self._listeners.setdefault(event, []).append(_Subscription(listener))
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        """Add a listener removed right before its first invocation."""
        self._check_listener(event, listener)
        self._listeners.setdefault(event, []).append(_Subscription(listener, once=True))
        return self

    def unsubscribe(self, event: str, listener: Listener) -> bool:
        """Remove the earliest registration of ``listener``. Returns True if found."""
        for sub in self._listeners.get(event, []):
            if sub.listener == listener:
                self._remove(event, sub)
                return True
        return False

    def _remove(self, event: str, sub: _Subscription) -> None:
        subs = self._listeners.get(event)
        if subs is None:
            return
        # Identity, not equality: the same callable may be subscribed twice
        for i, candidate in enumerate(subs):
            if candidate is sub:
                del subs[i]
                break
        if not subs:
            del self._listeners[event]

    def listeners(self, event: str) -> List[Listener]:
        return [sub.listener for sub in self._listeners.get(event, [])]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def event_names(self) -> List[str]:
        return list(self._listeners)

    def publish(self, event: str, *args: Any) -> bool:
        """Invoke every listener of ``event`` in registration order.

        Returns:
            True if at least one listener was invoked.

        Raises:
            EventPayloadError: ``args`` do not match the declared shape.
            RuntimeError: A coroutine listener was published with no
                running event loop.
            Exception: Whatever a listener raises, unchanged.
        """
        self._check_payload(event, args)
        subs = self._listeners.get(event)
        if not subs:
            return False

        for sub in list(subs):
            if sub.once:
                self._remove(event, sub)
            result = sub.listener(*args)
            if inspect.iscoroutine(result):
                self._schedule(event, result)
        return True

    def _schedule(self, event: str, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise RuntimeError(
                f"Async listener for '{event}' published outside a running event loop"
            ) from None
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(log_task_exception)

    async def drain_pending(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Familiar emitter spellings
    on = subscribe
    off = unsubscribe
    emit = publish
