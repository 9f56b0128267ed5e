#!/usr/bin/env python3
"""
RoomBot - event-driven bot for shared music rooms

Usage:
    python main.py --config config/config.yaml
    python main.py --config config/config.yaml --room my-room --log-level DEBUG
"""

import argparse
import asyncio
import importlib
import inspect
import logging
import pathlib
import sys

from core.config import ConfigError, get_key, load_config
from plugins.loader import PluginError
from roomapi.bot import Bot

# Logger will be configured in setup_logging()
LOGGER = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(description="RoomBot - room bot framework")
    parser.add_argument(
        '--config',
        type=str,
        default='config/config.yaml',
        help='Path to config file (default: config/config.yaml)'
    )
    parser.add_argument(
        '--room',
        type=str,
        help='Room to join (overrides room.name from config)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Log level (overrides logging.level from config)'
    )
    return parser.parse_args(argv)


def setup_logging(level="INFO", log_file=None):
    """
    Configure the root logger: console always, file when configured.

    Returns:
        Path of the log file or None
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        log_file = pathlib.Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
        handlers=handlers,
        force=True  # Override any existing config
    )
    return log_file


def resolve_client_factory(path):
    """
    Resolve "package.module:callable" to the callable.

    Raises:
        ConfigError: missing, malformed or unresolvable path
    """
    if not path or ":" not in str(path):
        raise ConfigError(f"upstream.client_factory must look like 'module:callable', got {path!r}")

    module_name, _, attr = str(path).partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import upstream client module '{module_name}': {e}") from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigError(f"'{attr}' in '{module_name}' is not callable")
    return factory


def config_overrides(args):
    """Command-line flags that take precedence over the config file"""
    overrides = {}
    if args.room:
        overrides["room"] = {"name": args.room}
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}
    return overrides


async def main(argv=None):
    args = parse_args(argv)

    try:
        config = load_config(args.config, overrides=config_overrides(args))
    except ConfigError as e:
        # Logging is not configured yet
        setup_logging("INFO")
        LOGGER.error(f"❌ {e}")
        sys.exit(1)

    setup_logging(
        get_key(config, "logging.level", "INFO"),
        get_key(config, "logging.file"),
    )
    LOGGER.info("🎵 RoomBot starting")

    try:
        factory = resolve_client_factory(get_key(config, "upstream.client_factory"))
    except ConfigError as e:
        LOGGER.error(f"❌ {e}")
        sys.exit(1)

    options = dict(get_key(config, "upstream.options", {}) or {})
    client = factory(**options)
    if inspect.isawaitable(client):
        client = await client

    bot = Bot(client, config)
    try:
        await bot.load_plugins()
    except PluginError as e:
        LOGGER.error(f"❌ {e}")
        sys.exit(1)

    await bot.run(args.room)


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nBye!")
    except Exception as e:
        LOGGER.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
