"""Main entry point for cmdgate.

Initializes logging in two phases (defaults then config-driven), opens
the permission store, registers the built-in commands, loads their
stored permissions, and runs the console adapter until EOF or
SIGTERM/SIGINT.

Key functions:
    build_manager: Create and populate a CommandManager.
    main: Async entry point.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .logging_config import log, setup_logging


async def build_manager(config, database):
    """Create the manager, register built-ins and load stored permissions."""
    from .commands import CommandManager, register_builtin_commands
    from .errors import ErrorStrings

    manager = CommandManager(
        database,
        prefix=config.command_prefix,
        error_strings=ErrorStrings(config.error_strings),
    )
    register_builtin_commands(manager, owner_id=config.owner_id)
    await manager.finish_all()
    return manager


async def main():
    """Main async entry point."""
    setup_logging()
    logger = structlog.get_logger("cmdgate")

    from .config import get_config
    from .console import ConsoleAdapter
    from .database import DatabaseSystem

    config = get_config()
    config.validate()
    setup_logging(config)

    database = DatabaseSystem(config.database_path)
    await database.initialize()

    manager = await build_manager(config, database)
    log("Main", f"cmdgate {__version__} ready,", len(manager.commands), "commands loaded")

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    adapter = ConsoleAdapter(manager, user_id=config.owner_id)
    try:
        console_task = asyncio.create_task(adapter.run(shutdown_event))
        stop_task = asyncio.create_task(shutdown_event.wait())
        await asyncio.wait({console_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        tasks = (console_task, stop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    except Exception as e:
        logger.error("console_error", error=str(e))
        raise
    finally:
        await database.close()
        log("Main", "cmdgate stopped")


def run():
    """Synchronous entry point for the ``cmdgate`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
