"""Application entry point for blob-mirror."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from blobmirror.application.services.ingestion import IngestionService
from blobmirror.config import (
    AppConfig,
    ConfigError,
    ConfigFileNotFoundError,
    load_config,
)
from blobmirror.domain.errors import StoreError
from blobmirror.infrastructure import RedisEventBus, RedisRegistry, RedisStore
from blobmirror.infrastructure.github.client import GitHubClient
from blobmirror.infrastructure.logging import get_logger, setup_logging
from blobmirror.presentation.discord.bot import MirrorBot
from blobmirror.presentation.http.server import HTTPServer

# Shutdown timeout in seconds
SHUTDOWN_TIMEOUT = 30

ROLES = ("bot", "web")


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="blob-mirror - mirror GitHub files into Discord messages"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "role",
        choices=ROLES,
        help="Process to run: 'bot' (Discord) or 'web' (GitHub webhooks)",
    )
    return parser.parse_args(args)


def check_role_config(config: AppConfig, role: str) -> None:
    """Check that the sections required by ``role`` are configured.

    Raises:
        ConfigError: If a required section or value is missing.
    """
    if role == "bot" and config.discord is None:
        raise ConfigError("The 'discord' section is required to run the bot")
    if role == "web" and not config.github.webhook_secret:
        raise ConfigError("'github.webhook_secret' is required to run the web server")


async def run_web(
    config: AppConfig,
    store: RedisStore,
    shutdown_event: asyncio.Event,
    logger: BoundLogger,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> None:
    """Serve GitHub webhooks until shutdown is signaled."""
    assert config.github.webhook_secret is not None
    ingestion = IngestionService(
        registry=RedisRegistry(store.client, get_logger("registry")),
        bus=RedisEventBus(store.client, get_logger("event_bus")),
        logger=get_logger("ingestion"),
        raw_base_url=config.github.raw_base_url,
    )
    http_server = HTTPServer(
        config=config.server,
        webhook_secret=config.github.webhook_secret,
        ingestion=ingestion,
        logger=get_logger("http_server"),
    )

    try:
        await http_server.start()
        logger.info("blob-mirror web started successfully")
        await shutdown_event.wait()
    finally:
        try:
            await asyncio.wait_for(http_server.stop(), timeout=shutdown_timeout)
        except TimeoutError:
            logger.warning(
                "Shutdown timed out, forcing termination",
                timeout_seconds=shutdown_timeout,
            )


async def run_bot(
    config: AppConfig,
    store: RedisStore,
    shutdown_event: asyncio.Event,
    logger: BoundLogger,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> None:
    """Run the Discord bot until shutdown is signaled or it disconnects."""
    assert config.discord is not None
    github = GitHubClient(config.github, get_logger("github"))
    bot = MirrorBot(
        config=config.discord,
        mirror_config=config.mirror,
        github_config=config.github,
        registry=RedisRegistry(store.client, get_logger("registry")),
        bus=RedisEventBus(store.client, get_logger("event_bus")),
        github=github,
        logger=get_logger("bot"),
    )

    bot_task = asyncio.create_task(bot.start(config.discord.token))
    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        done, _ = await asyncio.wait(
            [bot_task, shutdown_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        if bot_task in done:
            # Surface login and gateway errors.
            bot_task.result()
    finally:
        shutdown_task.cancel()
        try:
            await asyncio.wait_for(bot.close(), timeout=shutdown_timeout)
        except TimeoutError:
            logger.warning(
                "Shutdown timed out, forcing termination",
                timeout_seconds=shutdown_timeout,
            )
        if not bot_task.done():
            bot_task.cancel()
        await asyncio.gather(bot_task, shutdown_task, return_exceptions=True)
        await github.close()


async def main_async(
    config_path: Path,
    role: str,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> int:
    """Async main function.

    Args:
        config_path: Path to configuration file.
        role: Either "bot" or "web".
        shutdown_timeout: Maximum time in seconds to wait for graceful shutdown.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # 1. Load configuration
    config = load_config(config_path)
    check_role_config(config, role)

    # 2. Initialize logging
    setup_logging(config.logging, role)
    logger = get_logger(__name__)
    logger.info("Starting blob-mirror", role=role, config_path=str(config_path))

    # 3. Connect to the shared store
    store = RedisStore(config.redis)
    try:
        await store.initialize()
    except StoreError as e:
        logger.error("Failed initializing database", error=str(e))
        return 1

    # 4. Setup shutdown handling
    shutdown_event = asyncio.Event()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal, initiating shutdown", signal=sig.name)
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    runner = run_bot if role == "bot" else run_web
    try:
        await runner(config, store, shutdown_event, logger, shutdown_timeout)
    except asyncio.CancelledError:
        logger.info("Main loop cancelled")
    except Exception as e:
        logger.error("blob-mirror stopped with an error", error=str(e), exc_info=True)
        return 1
    finally:
        logger.info("Shutting down")
        await store.close()
        logger.info("blob-mirror stopped")

    return 0


def main() -> None:
    """Main entry point."""
    args = parse_args()
    config_path = args.config

    try:
        exit_code = asyncio.run(main_async(config_path, args.role))
        sys.exit(exit_code)
    except ConfigFileNotFoundError:
        print(f"Error: {config_path} not found", file=sys.stderr)
        sys.exit(1)
    except ConfigError as e:
        print(f"Error: Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: Configuration validation error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
