"""Submission of resolved commands to the remote command directory.

The core only needs a narrow capability: "replace every command of
this scope with these payloads". CommandRegistrar describes it;
HttpCommandRegistrar implements it as a bulk overwrite over HTTP.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Protocol

import aiohttp
import structlog

from ..config import DEFAULT_API_BASE_URL
from ..exceptions import ConfigurationError, ErrorCategory, RegistrationError
from .models import CommandForest
from .payload import payloads_by_scope

logger = structlog.get_logger("slashwire.registrar")


class CommandRegistrar(Protocol):
    """Anything able to overwrite the commands of one scope."""

    async def overwrite(
        self, payloads: List[Dict[str, Any]], guild: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        ...


class HttpCommandRegistrar:
    """Bulk-overwrites application commands through the REST API.

    Args:
        token: Bot token sent as ``Authorization: Bot <token>``.
        application_id: Application owning the commands.
        api_base_url: REST base URL.
        timeout: Total timeout per request in seconds.
        session: Optional externally managed aiohttp session.
    """

    def __init__(
        self,
        token: str,
        application_id: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if not token:
            raise ConfigurationError(
                "A bot token is required to register commands",
                setting_name="token",
                category=ErrorCategory.INFRASTRUCTURE,
            )
        if not application_id:
            raise ConfigurationError(
                "An application id is required to register commands",
                setting_name="application_id",
                category=ErrorCategory.INFRASTRUCTURE,
            )
        self.token = token
        self.application_id = application_id
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config) -> "HttpCommandRegistrar":
        return cls(
            token=config.token,
            application_id=config.application_id,
            api_base_url=config.api_base_url,
            timeout=config.registrar_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this registrar created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpCommandRegistrar":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def commands_url(self, guild: Optional[str] = None) -> str:
        base = f"{self.api_base_url}/applications/{self.application_id}"
        if guild is not None:
            return f"{base}/guilds/{guild}/commands"
        return f"{base}/commands"

    def _build_headers(self) -> dict:
        return {
            "Authorization": f"Bot {self.token}",
            "Content-Type": "application/json",
        }

    async def overwrite(
        self, payloads: List[Dict[str, Any]], guild: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Replace all commands of one scope with ``payloads``.

        Returns:
            The command objects echoed back by the directory.

        Raises:
            RegistrationError: On a non-2xx status, a timeout or a
                connection failure. 429 and 5xx are TRANSIENT.
        """
        url = self.commands_url(guild)
        session = await self._get_session()
        try:
            async with session.put(
                url,
                json=payloads,
                headers=self._build_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if 200 <= resp.status < 300:
                    data = await resp.json()
                    logger.info(
                        "commands_registered",
                        guild=guild,
                        count=len(payloads),
                    )
                    return data
                error_text = await resp.text()
                logger.error(
                    "command_registration_rejected",
                    guild=guild,
                    status=resp.status,
                    error=error_text[:500],
                )
                transient = resp.status == 429 or resp.status >= 500
                raise RegistrationError(
                    f"Command directory returned status {resp.status}",
                    status=resp.status,
                    guild=guild,
                    category=ErrorCategory.TRANSIENT if transient else ErrorCategory.PERMANENT,
                )
        except asyncio.TimeoutError as e:
            logger.warning("command_registration_timeout", guild=guild, timeout=self.timeout)
            raise RegistrationError(
                "Timed out registering commands",
                guild=guild,
                category=ErrorCategory.TRANSIENT,
            ) from e
        except aiohttp.ClientError as e:
            logger.warning("command_registration_failed", guild=guild, error=str(e))
            raise RegistrationError(
                f"Connection error registering commands: {e}",
                guild=guild,
                category=ErrorCategory.TRANSIENT,
            ) from e


async def sync_commands(
    forest: CommandForest, registrar: CommandRegistrar
) -> Dict[Optional[str], List[Dict[str, Any]]]:
    """Submit every guild scope of ``forest`` through ``registrar``.

    One overwrite per scope, global scope first when present.

    Returns:
        Mapping of scope to the directory's response for that scope.
    """
    by_scope = payloads_by_scope(forest)
    ordered = sorted(by_scope, key=lambda scope: scope is not None)
    results: Dict[Optional[str], List[Dict[str, Any]]] = {}
    for scope in ordered:
        results[scope] = await registrar.overwrite(by_scope[scope], guild=scope)
    return results
