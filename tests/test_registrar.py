"""Tests for remote command registration."""

import asyncio
import json
from unittest.mock import MagicMock

import aiohttp
import pytest

from slashwire.commands.models import SlashDescriptor
from slashwire.commands.registrar import HttpCommandRegistrar, sync_commands
from slashwire.commands.tree import build_command_forest
from slashwire.exceptions import ConfigurationError, ErrorCategory, RegistrationError


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def json(self):
        return self._body

    async def text(self):
        return json.dumps(self._body)


class FakeRequest:
    def __init__(self, response=None, error=None):
        self._response = response
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self._response

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; records PUT calls."""

    def __init__(self, *requests):
        self.closed = False
        self.calls = []
        self._requests = list(requests)

    def put(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self._requests.pop(0)

    async def close(self):
        self.closed = True


def _registrar(session, **kwargs):
    return HttpCommandRegistrar(
        token="tok", application_id="42", api_base_url="https://api.test/v10/",
        session=session, **kwargs,
    )


def test_requires_token_and_application_id():
    with pytest.raises(ConfigurationError, match="token"):
        HttpCommandRegistrar(token="", application_id="42")
    with pytest.raises(ConfigurationError, match="application id"):
        HttpCommandRegistrar(token="tok", application_id=None)


def test_commands_url_per_scope():
    registrar = _registrar(FakeSession())
    assert registrar.commands_url() == "https://api.test/v10/applications/42/commands"
    assert registrar.commands_url("7") == "https://api.test/v10/applications/42/guilds/7/commands"


def test_from_config():
    config = MagicMock()
    config.token = "tok"
    config.application_id = "42"
    config.api_base_url = "https://api.test/v10"
    config.registrar_timeout = 5.0
    registrar = HttpCommandRegistrar.from_config(config)
    assert registrar.timeout == 5.0
    assert registrar.commands_url().startswith("https://api.test/v10/applications/42")


@pytest.mark.asyncio
async def test_overwrite_puts_payloads_with_bot_auth():
    echoed = [{"id": "1", "name": "ping"}]
    session = FakeSession(FakeRequest(FakeResponse(200, echoed)))
    registrar = _registrar(session)

    result = await registrar.overwrite([{"name": "ping", "description": "Pong"}], guild="7")

    assert result == echoed
    url, kwargs = session.calls[0]
    assert url.endswith("/guilds/7/commands")
    assert kwargs["json"] == [{"name": "ping", "description": "Pong"}]
    assert kwargs["headers"]["Authorization"] == "Bot tok"


@pytest.mark.asyncio
async def test_rate_limited_submission_is_retryable():
    session = FakeSession(FakeRequest(FakeResponse(429, {"retry_after": 1.5})))
    with pytest.raises(RegistrationError) as exc_info:
        await _registrar(session).overwrite([])
    assert exc_info.value.status == 429
    assert exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_rejected_payload_is_permanent():
    session = FakeSession(FakeRequest(FakeResponse(400, {"message": "Invalid Form Body"})))
    with pytest.raises(RegistrationError) as exc_info:
        await _registrar(session).overwrite([])
    assert exc_info.value.category == ErrorCategory.PERMANENT
    assert not exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_timeout_and_connection_errors_are_transient():
    session = FakeSession(
        FakeRequest(error=asyncio.TimeoutError()),
        FakeRequest(error=aiohttp.ClientConnectionError("refused")),
    )
    registrar = _registrar(session)

    with pytest.raises(RegistrationError, match="Timed out"):
        await registrar.overwrite([])
    with pytest.raises(RegistrationError, match="Connection error") as exc_info:
        await registrar.overwrite([])
    assert exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_close_leaves_external_session_open():
    session = FakeSession()
    async with _registrar(session):
        pass
    assert session.closed is False


class RecordingRegistrar:
    def __init__(self):
        self.calls = []

    async def overwrite(self, payloads, guild=None):
        self.calls.append((guild, [p["name"] for p in payloads]))
        return payloads


@pytest.mark.asyncio
async def test_sync_commands_submits_one_overwrite_per_scope():
    def handler(interaction):
        pass

    forest = build_command_forest([
        SlashDescriptor(name="guild-only", handler=handler, guild="7"),
        SlashDescriptor(name="everywhere", handler=handler),
    ])
    registrar = RecordingRegistrar()

    results = await sync_commands(forest, registrar)

    assert registrar.calls == [(None, ["everywhere"]), ("7", ["guild-only"])]
    assert set(results) == {None, "7"}


@pytest.mark.asyncio
async def test_sync_empty_forest_submits_nothing():
    registrar = RecordingRegistrar()
    assert await sync_commands(build_command_forest([]), registrar) == {}
    assert registrar.calls == []
