"""Process entry point for the webhook bot.

Wires the record store, the Telegram client, the ingress app and the
dispatcher together, registers the webhook and runs until SIGINT/SIGTERM.
Run with ``python -m apps.webhook.main``.
"""

import asyncio
import signal
import sys

from apps.dispatcher import CommandDispatcher
from apps.messenger import TelegramMessenger
from apps.store import RecordStore
from lib.config.bot_config_loader import BotConfig, ConfigError, load_bot_config
from lib.telemetry.logger import configure_logging, get_logger

from . import WebhookListener, create_app
from .stream import UpdateStream, stop_pair


logger = get_logger(__name__)


async def serve(cfg: BotConfig) -> None:
    store = RecordStore.from_dsn(cfg.database_url)
    store.ensure_schema()
    messenger = TelegramMessenger(cfg.bot_token)
    try:
        await messenger.set_webhook(cfg.webhook_url)
        me = await messenger.get_me()

        token, flag = stop_pair()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, token.stop)

        stream = UpdateStream()
        listener = WebhookListener(
            create_app(stream, cfg.webhook_path),
            stream,
            flag,
            host=cfg.bind_address,
            port=cfg.port,
            graceful_timeout=cfg.graceful_timeout,
        )
        dispatcher = CommandDispatcher(store, messenger, bot_name=me.get("username"))

        logger.info("listening on %s:%s", cfg.bind_address, cfg.port)
        server_task = asyncio.create_task(listener.serve())
        await dispatcher.run(stream)
        await server_task
    finally:
        await messenger.close()
        store.dispose()


def main() -> None:
    try:
        cfg = load_bot_config()
    except ConfigError as exc:
        configure_logging()
        logger.error("invalid configuration: %s", exc)
        sys.exit(1)

    configure_logging(cfg.log_level)
    logger.info("Starting RattleHead bot...")
    asyncio.run(serve(cfg))


if __name__ == "__main__":
    main()
