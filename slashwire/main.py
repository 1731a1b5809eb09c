"""Command-line entry point for slashwire.

Usage:
    slashwire show <module>:<ClientClass>   Print the remote command payloads
    slashwire sync <module>:<ClientClass>   Overwrite the remote commands

Both commands construct the client class (which merges and resolves
its declarations) without connecting to the gateway.

Key functions:
    main: Async entry point -- sets up logging and config, loads the
        client class and runs the requested command.
    run: Synchronous wrapper for the ``slashwire`` console script.
"""

import asyncio
import importlib
import json
import sys
from typing import List, Optional

import structlog

from .logging_config import setup_logging

USAGE = "usage: slashwire {show|sync} <module>:<ClientClass>"


def load_client_class(target: str):
    """Import ``module:Class`` and return the class."""
    module_name, _, class_name = target.partition(":")
    if not module_name or not class_name:
        raise ValueError(f"Expected <module>:<ClientClass>, got '{target}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, class_name)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{class_name}'") from None


async def main(argv: Optional[List[str]] = None) -> int:
    """Main async entry point. Returns the process exit code."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2 or args[0] not in ("show", "sync"):
        print(USAGE, file=sys.stderr)
        return 2
    command, target = args

    setup_logging()
    logger = structlog.get_logger("slashwire")

    # Import here to ensure logging is configured first
    from .commands.registrar import HttpCommandRegistrar
    from .config import get_config
    from .exceptions import SlashwireError

    config = get_config()
    config.validate()
    setup_logging(config)

    try:
        client_cls = load_client_class(target)
        client = client_cls()
        if command == "show":
            print(json.dumps(
                {str(scope) if scope else "global": payloads
                 for scope, payloads in client.slash.payloads_by_scope().items()},
                indent=2,
            ))
            return 0

        async with HttpCommandRegistrar.from_config(config) as registrar:
            results = await client.slash.sync(registrar)
        logger.info(
            "commands_synced",
            scopes=len(results),
            commands=sum(len(r) for r in results.values()),
        )
        return 0
    except (ValueError, ImportError) as e:
        logger.error("client_load_failed", target=target, error=str(e))
        return 1
    except SlashwireError as e:
        logger.error("slashwire_error", error=str(e), category=e.category.value)
        return 1


def run():
    """Synchronous entry point for the ``slashwire`` console script."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
