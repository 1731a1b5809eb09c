"""Configuration management for slashwire.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
sensible defaults for the client, the slash command layer, the remote
registrar and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger("slashwire.client")

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
DEFAULT_DESCRIPTION = "No description provided"


class Config:
    """Central configuration manager for slashwire.

    Loads settings.yaml and .env from the config directory. Provides
    typed property accessors. Read-only after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``$SLASHWIRE_CONFIG_DIR`` or ``./config``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(os.environ.get("SLASHWIRE_CONFIG_DIR", "config"))
        self.config_dir = Path(config_dir)

        # Load environment variables
        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise -- registration-only
        use (e.g. printing payloads) needs neither token nor app id.
        """
        if not self.token:
            logger.warning("no_token_configured", env="SLASHWIRE_TOKEN")
        app_id = self.application_id
        if app_id is not None and not app_id.isdigit():
            logger.error("config_invalid_value", key="application_id", value=app_id)
        for gid in self.settings.get("guild_ids", []) or []:
            if not str(gid).isdigit():
                logger.error("config_invalid_value", key="guild_ids", value=gid)
        timeout = self.settings.get("registrar", {}).get("timeout")
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            logger.error("config_invalid_value", key="registrar.timeout", value=timeout)

    @property
    def token(self) -> str:
        """Bot token. Env var SLASHWIRE_TOKEN takes precedence."""
        return os.environ.get("SLASHWIRE_TOKEN") or self.settings.get("token", "")

    @property
    def application_id(self) -> Optional[str]:
        """Application id owning the slash commands, as a string snowflake."""
        value = os.environ.get("SLASHWIRE_APPLICATION_ID") or self.settings.get("application_id")
        return str(value) if value else None

    @property
    def api_base_url(self) -> str:
        """REST base URL used by the command registrar."""
        return self.settings.get("api_base_url", DEFAULT_API_BASE_URL).rstrip("/")

    @property
    def enable_slash(self) -> bool:
        """Whether clients wire slash command dispatch (default True)."""
        return self.settings.get("enable_slash", True)

    @property
    def default_description(self) -> str:
        """Description used for commands whose handler has no docstring."""
        return self.settings.get("default_description", DEFAULT_DESCRIPTION)

    @property
    def guild_ids(self) -> List[str]:
        """Guild ids that receive guild-scoped commands by default."""
        ids = self.settings.get("guild_ids", []) or []
        if not isinstance(ids, list):
            logger.error("guild_ids_invalid_type", type=type(ids).__name__)
            return []
        return [str(gid) for gid in ids]

    @property
    def registrar_timeout(self) -> float:
        """Total timeout in seconds for one registrar request (default 30)."""
        registrar_config = self.settings.get("registrar", {})
        val = registrar_config.get("timeout", 30)
        try:
            return float(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_registrar_timeout", value=val)
            return 30.0

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path.cwd() / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"events": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
