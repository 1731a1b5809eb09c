"""Tests for the slashwire exception hierarchy."""

from slashwire.exceptions import (
    ConfigurationError,
    DispatchError,
    ErrorCategory,
    EventPayloadError,
    NameCollisionError,
    RegistrationError,
    SlashwireError,
    UnknownCommandError,
    UnresolvedParentError,
)


def test_author_mistakes_are_configuration_errors():
    for cls in (NameCollisionError, UnresolvedParentError, EventPayloadError):
        err = cls("bad")
        assert isinstance(err, ConfigurationError)
        assert err.category == ErrorCategory.PERMANENT
        assert not err.is_retryable


def test_str_includes_module_and_context():
    err = NameCollisionError(
        "Command 'ping' collides", name="ping", existing="Bot.a", duplicate="Bot.b"
    )
    rendered = str(err)
    assert rendered.startswith("Command 'ping' collides [module=commands.tree]")
    assert "existing=Bot.a" in rendered
    assert "duplicate=Bot.b" in rendered


def test_unknown_command_renders_path():
    err = UnknownCommandError("No handler", path=["cmd", "g", "b"])
    assert isinstance(err, DispatchError)
    assert err.path == ("cmd", "g", "b")
    assert "path=/cmd g b" in str(err)


def test_registration_error_category_controls_retry():
    assert RegistrationError("slow down", status=429, category=ErrorCategory.TRANSIENT).is_retryable
    assert not RegistrationError("bad body", status=400).is_retryable


def test_repr_and_defaults():
    err = SlashwireError()
    assert str(err) == "SlashwireError"
    assert repr(ConfigurationError("x")) == (
        "ConfigurationError('x', category='permanent', module='config')"
    )
