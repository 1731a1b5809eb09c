"""Logging configuration for slashwire.

Routes structlog events through stdlib logging so each subsystem of
the registration layer gets its own rotating file, and scrubs bot
credentials from every event before it is rendered.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root              → StreamHandler (stderr)
      └─ slashwire    → RotatingFileHandler → slashwire.log (combined)
           ├─ slashwire.client    → client.log    (merging, modules)
           ├─ slashwire.events    → events.log    (listener tasks)
           ├─ slashwire.commands  → commands.log  (tree, dispatch)
           └─ slashwire.registrar → registrar.log (remote sync)

stdout is left alone: ``slashwire show`` prints its JSON there.
"""

import logging
import logging.handlers
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import structlog

SUBSYSTEMS = ("client", "events", "commands", "registrar")

LOGGER_PREFIX = "slashwire"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

# Header pattern first: it must see "Bot <token>" before the bare token
# pattern rewrites the token half of it.
_SECRET_PATTERNS = (
    re.compile(r"(?:Bot|Bearer)\s+[a-zA-Z0-9_./-]{20,}"),
    re.compile(r"[MNO][a-zA-Z0-9_-]{23,27}\.[a-zA-Z0-9_-]{6}\.[a-zA-Z0-9_-]{27,40}"),
)

_REDACTED = "***REDACTED***"


def _scrub(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that redacts bot tokens and Authorization values.

    Strings are scrubbed at the top level and one level into lists,
    tuples and dicts (request headers are logged as dicts).
    """
    for key, value in event_dict.items():
        if isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(_scrub(v) for v in value)
        elif isinstance(value, dict):
            event_dict[key] = {k: _scrub(v) for k, v in value.items()}
        else:
            event_dict[key] = _scrub(value)
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

@dataclass
class _LogSettings:
    log_dir: Path = field(default_factory=lambda: Path.cwd() / "logs")
    level: int = logging.INFO
    subsystem_levels: Dict[str, int] = field(default_factory=dict)
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @classmethod
    def from_config(cls, config) -> "_LogSettings":
        level = _level(config.logging_level, logging.INFO)
        return cls(
            log_dir=config.log_dir,
            level=level,
            subsystem_levels={
                name: _level(value, level)
                for name, value in config.logging_subsystem_levels.items()
            },
            max_bytes=config.logging_max_file_size_mb * 1024 * 1024,
            backup_count=config.logging_backup_count,
        )


def _level(name: Any, default: int) -> int:
    return getattr(logging, str(name).upper(), default) if name else default


def _attach_file(logger: logging.Logger, path: Path, level: int,
                 settings: _LogSettings, formatter: logging.Formatter) -> None:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logging(config=None) -> None:
    """Configure structlog and the per-subsystem log files.

    Every event appears in its subsystem file, the combined
    slashwire.log and on stderr.

    Args:
        config: Optional Config instance. The first call, made before
                config loads, uses defaults and does not cache loggers,
                so the second call with the real config takes effect.
    """
    settings = _LogSettings.from_config(config) if config is not None else _LogSettings()

    files_ok = True
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        files_ok = False
        print(
            f"WARNING: Cannot create log directory {settings.log_dir}: {exc}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers filter by level
    root_logger.handlers.clear()
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(settings.level)
    console_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root_logger.addHandler(console_handler)

    package_logger = logging.getLogger(LOGGER_PREFIX)
    package_logger.setLevel(logging.DEBUG)
    package_logger.handlers.clear()
    package_logger.propagate = True
    if files_ok:
        _attach_file(package_logger, settings.log_dir / f"{LOGGER_PREFIX}.log",
                     settings.level, settings, file_formatter)

    for subsystem in SUBSYSTEMS:
        level = settings.subsystem_levels.get(subsystem, settings.level)
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        sub_logger.setLevel(level)
        sub_logger.handlers.clear()
        sub_logger.propagate = True
        if files_ok:
            _attach_file(sub_logger, settings.log_dir / f"{subsystem}.log",
                         level, settings, file_formatter)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
