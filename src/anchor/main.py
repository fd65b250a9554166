"""
Anchor Backend Pipeline
=======================

Runs the event pipeline behind the Anchor support app: two-stage moderation
of pleas, encouragements, posts and comments; push notification fan-out;
and daily devotional generation.

Usage:
    anchor                      run the pipeline until interrupted
    anchor generate [DATE]      generate and store one devotional (default:
                                two days from today, UTC)
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ANCHOR_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("ANCHOR_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import argparse
import asyncio
from datetime import date
from typing import Sequence

from dotenv import load_dotenv

from anchor.util.logger import get_logger, handle_exception

logger = get_logger("main")


def load_environment() -> None:
    """Load ``.env`` from the base directory and warn about missing secrets."""
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    if not os.getenv("OPENAI_API_KEY"):
        logger.critical("'OPENAI_API_KEY' environment variable not set. Moderation and generation cannot run.")
        sys.exit(1)
    if not os.getenv("ESV_API_KEY"):
        logger.warning("'ESV_API_KEY' not set; chapter text will use the reader-link placeholder.")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="anchor", description="Anchor backend event pipeline")
    subcommands = parser.add_subparsers(dest="command")

    generate = subcommands.add_parser("generate", help="Generate and store one daily devotional")
    generate.add_argument(
        "date",
        nargs="?",
        type=date.fromisoformat,
        help="Target date (YYYY-MM-DD); defaults to two days from today (UTC)",
    )
    return parser.parse_args(argv)


async def wait_for_shutdown() -> None:
    """Block until the task is cancelled (Ctrl+C)."""
    await asyncio.Event().wait()


async def async_main(args: argparse.Namespace) -> int:
    """Initialize storage and the runtime, then run the requested command.

    Returns
    -------
    int
        Process exit code.
    """
    from anchor.configuration.app_configuration import app_config
    from anchor.database.database import Database
    from anchor.runtime import AnchorRuntime
    from anchor.scheduler.daily_content_scheduler import target_date_for, utc_now

    database = Database(app_config.database_path)
    if not await database.initialize():
        logger.critical("Failed to initialize database at %s", app_config.database_path)
        return 1

    try:
        runtime = AnchorRuntime(app_config, database)
    except Exception as exc:
        logger.critical("Failed to build runtime: %s", exc)
        await database.shutdown()
        return 1

    exit_code = 0
    try:
        if args.command == "generate":
            target = args.date.isoformat() if args.date else target_date_for(
                utc_now(), app_config.daily_content_settings.days_ahead
            )
            content = await runtime.generator.generate(target)
            logger.info("Created daily content for %s: %s", content.date, content.verse_reference)
        else:
            runtime.start()
            try:
                await wait_for_shutdown()
            except asyncio.CancelledError:
                logger.info("Shutdown signal received")
    except Exception as exc:
        logger.critical("Pipeline runtime error: %s", exc)
        exit_code = 1
    finally:
        await runtime.shutdown()
        await database.shutdown()
        logger.info("Shutdown complete.")

    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    args = parse_args(argv)
    logger.info("Starting Anchor pipeline…")
    try:
        load_environment()
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the pipeline: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
