"""Custom exception hierarchy for slashwire.

Provides precise error classification for the registration engine,
the event facade, the command tree and the remote registrar, so that
callers can tell an author mistake (fix the annotation) from a
transport hiccup (worth retrying).

Every error carries a category, an originating module and arbitrary
key-value context that is rendered into ``str(err)`` and is suitable
for structured logging.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (rate limit, 5xx, timeout)
    PERMANENT = "permanent"          # Not worth retrying (bad annotation, bad input)
    INFRASTRUCTURE = "infrastructure"  # Missing token, unreachable API config


class SlashwireError(Exception):
    """Base exception for all slashwire errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "commands.tree").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(SlashwireError):
    """Invalid handler declaration or missing configuration.

    Raised at class-definition, merge or resolve time. Re-running the
    same registration pass reproduces the error, so it is never retried:
    the author must fix the annotation or the setting.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )


class NameCollisionError(ConfigurationError):
    """Two commands claim the same name within one scope.

    Attributes:
        name: The contested command, group or sub-command name.
        guild: Guild scope of the collision (None for global commands).
        existing: Qualified name of the handler registered first.
        duplicate: Qualified name of the handler registered second.
    """

    def __init__(
        self,
        message: str = "",
        *,
        name: str = "",
        guild: Optional[str] = None,
        existing: Optional[str] = None,
        duplicate: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.name = name
        self.guild = guild
        self.existing = existing
        self.duplicate = duplicate
        super().__init__(
            message,
            module=module or "commands.tree",
            name=name,
            guild=guild,
            existing=existing,
            duplicate=duplicate,
            **context,
        )


class UnresolvedParentError(ConfigurationError):
    """A sub-command references a root command that was never declared.

    Attributes:
        parent: Name of the missing root command.
        guild: Guild scope that was searched (None for global).
        name: Name of the orphaned sub-command.
    """

    def __init__(
        self,
        message: str = "",
        *,
        parent: str = "",
        guild: Optional[str] = None,
        name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.parent = parent
        self.guild = guild
        self.name = name
        super().__init__(
            message,
            module=module or "commands.tree",
            parent=parent,
            guild=guild,
            command=name,
            **context,
        )


class EventPayloadError(ConfigurationError):
    """Published arguments do not match the declared shape of an event."""

    def __init__(
        self,
        message: str = "",
        *,
        event: str = "",
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.event = event
        super().__init__(message, module=module or "events", event=event, **context)


# ---------------------------------------------------------------------------
# Dispatch exceptions
# ---------------------------------------------------------------------------

class DispatchError(SlashwireError):
    """Error while routing an incoming interaction to a handler."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "commands.dispatch", **context
        )


class UnknownCommandError(DispatchError):
    """An interaction names a command path with no registered handler.

    Attributes:
        path: The command path as invoked, e.g. ("cmd", "grp", "sub").
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: tuple = (),
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.path = tuple(path)
        super().__init__(
            message, module=module, path="/" + " ".join(self.path), **context
        )


# ---------------------------------------------------------------------------
# Remote registration exceptions
# ---------------------------------------------------------------------------

class RegistrationError(SlashwireError):
    """The remote command directory rejected or failed a submission.

    Attributes:
        status: HTTP status code returned (if any).
        guild: Guild scope of the failed submission (None for global).
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        guild: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.guild = guild
        super().__init__(
            message,
            category=category,
            module=module or "commands.registrar",
            status=status,
            guild=guild,
            **context,
        )
