"""
Modbatch Moderation Bot
=======================

A Discord bot that batches chat messages, asks an AI judge which of them
break the server rules, and mutes, kicks, recalls and forwards accordingly.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODBATCH_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODBATCH_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import signal
import discord
from dotenv import load_dotenv

from modbatch.configuration.app_configuration import app_config
from modbatch.listener import message_listener
from modbatch.moderation.moderation_pipeline import ModerationPipeline
from modbatch.platforms.discord_bot import DiscordPlatformBot
from modbatch.platforms.platform_bot import BotRegistry
from modbatch.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents needed to read and moderate guild messages."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def create_runtime() -> tuple[discord.Bot, ModerationPipeline]:
    """Instantiate the Discord bot, the moderation pipeline, and wire them together."""
    bot = discord.Bot(intents=build_intents())
    registry = BotRegistry([DiscordPlatformBot(bot)])
    pipeline = ModerationPipeline.from_config(app_config, registry)
    message_listener.setup(bot, pipeline.controller)
    logger.info("Moderation pipeline wired for platforms: %s", ", ".join(registry.platforms))
    return bot, pipeline


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifetime."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, pipeline: ModerationPipeline) -> None:
    """Drain the moderation pipeline, then close the Discord connection.

    The pipeline is drained first so that deletions, mutes and the audit
    forward of the last batches still reach Discord.
    """
    try:
        await pipeline.shutdown()
    except Exception as exc:
        logger.exception("Error while draining the moderation pipeline: %s", exc)

    if not bot.is_closed():
        await bot.close()

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the bot and the moderation pipeline, returning an exit code."""
    token = load_environment()

    try:
        bot, pipeline = create_runtime()
    except Exception as exc:
        logger.critical("Failed to initialize the bot: %s", exc)
        return 1

    main_task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if main_task is not None:
        try:
            loop.add_signal_handler(signal.SIGTERM, main_task.cancel)
        except NotImplementedError:
            logger.debug("SIGTERM handler not supported on this platform")

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, pipeline)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Modbatch moderation bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
