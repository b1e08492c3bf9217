"""HOE Shutdown Monitor -- entry point.

Assembles the check-and-notify pipeline:

    Scheduler (cron tick) / --check-now
        -> ShutdownMonitor: HoeProvider fetch -> format -> hash compare
        -> NotificationDispatcher (concurrent fan-out to subscribers)
        -> StateStore (hash, event ids, check time)

One httpx.AsyncClient and one Telegram Application are created here and
scoped with ``async with``, so both are released on shutdown. The
Application also polls for /start, /stop and /status.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import httpx

from core.config import ConfigError, Settings, load_settings
from core.dispatcher import NotificationDispatcher
from core.monitor import ShutdownMonitor
from core.scheduler import Scheduler
from core.state_store import StateStore
from notifiers.telegram_bot import TelegramMessenger, build_application
from providers.hoe_provider import HoeProvider

log = logging.getLogger("main")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch the HOE outage schedule and broadcast changes to Telegram.",
    )
    parser.add_argument(
        "--check-now",
        action="store_true",
        help="send the current schedule once at startup, then follow the cron schedule",
    )
    return parser.parse_args(argv)


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends the run.
            pass


async def run(settings: Settings, check_now: bool = False) -> None:
    log.info("HOE Shutdown Monitor starting")
    log.info(
        "Configuration loaded: url=%s street=%s house=%s schedule=%r",
        settings.hoe_api_url,
        settings.hoe_street_id,
        settings.hoe_house,
        settings.cron_schedule,
    )

    store = StateStore(settings.state_file_path)
    application = build_application(settings.telegram_bot_token, store)

    async with httpx.AsyncClient() as client, application:
        provider = HoeProvider(
            client=client,
            street_id=settings.hoe_street_id,
            house=settings.hoe_house,
            api_url=settings.hoe_api_url,
            retry_attempts=settings.retry_attempts,
            retry_delay_ms=settings.retry_delay_ms,
            request_timeout_ms=settings.request_timeout_ms,
        )
        messenger = TelegramMessenger(
            application.bot,
            retry_attempts=settings.retry_attempts,
            retry_delay_ms=settings.retry_delay_ms,
        )
        dispatcher = NotificationDispatcher(messenger, store, settings.telegram_chat_id)
        monitor = ShutdownMonitor(provider, store, dispatcher)

        if check_now:
            log.info("Running initial check")
            try:
                await monitor.force_notify()
            except Exception:
                log.exception("Initial check failed")

        await application.start()
        await application.updater.start_polling()
        log.info("Telegram bot polling started")

        scheduler = Scheduler(monitor, settings.cron_schedule, settings.timezone)
        scheduler.start()

        stop = asyncio.Event()
        _install_signal_handlers(stop)
        log.info("Bot is running. Press Ctrl+C to stop.")
        try:
            await stop.wait()
        finally:
            log.info("Shutting down")
            scheduler.shutdown()
            await application.updater.stop()
            await application.stop()

    log.info("Shutdown complete")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging()

    try:
        settings = load_settings()
    except ConfigError as exc:
        log.error("%s", exc)
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)

    try:
        asyncio.run(run(settings, check_now=args.check_now))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down.")
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
