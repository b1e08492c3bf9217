from __future__ import annotations

import logging

from telegram import Bot, LinkPreviewOptions, Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes

from core.retry import with_retry
from core.state_store import StateStore
from notifiers.base import Messenger

log = logging.getLogger(__name__)

SUBSCRIBED_TEXT = (
    "✅ Ви підписались на сповіщення про відключення електроенергії.\n\n"
    "Використовуйте /stop, щоб відписатися."
)
ALREADY_SUBSCRIBED_TEXT = (
    "ℹ️ Ви вже підписані на сповіщення.\n\n"
    "Використовуйте /stop, щоб відписатися."
)
UNSUBSCRIBED_TEXT = (
    "🔕 Ви відписались від сповіщень.\n\n"
    "Використовуйте /start, щоб підписатися знову."
)
NOT_SUBSCRIBED_TEXT = (
    "ℹ️ Ви не були підписані на сповіщення.\n\n"
    "Використовуйте /start, щоб підписатися."
)
STATUS_SUBSCRIBED_TEXT = "✅ Ви підписані на сповіщення."
STATUS_NOT_SUBSCRIBED_TEXT = "❌ Ви не підписані на сповіщення. Використовуйте /start"


class TelegramMessenger(Messenger):
    """Sends HTML messages through a python-telegram-bot ``Bot``.

    Each send is retried with a constant delay; the bot's lifetime is owned
    by whoever built it (see ``main.run``).
    """

    def __init__(self, bot: Bot, retry_attempts: int = 3, retry_delay_ms: int = 5000) -> None:
        self._bot = bot
        self._retry_attempts = retry_attempts
        self._retry_delay_ms = retry_delay_ms

    async def send(self, chat_id: int, text: str) -> None:
        async def attempt() -> None:
            message = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
            log.info("Telegram message %s sent to %s", message.message_id, chat_id)

        try:
            await with_retry(
                attempt,
                attempts=self._retry_attempts,
                delay_ms=self._retry_delay_ms,
            )
        except Exception as exc:
            log.error("Failed to send Telegram message to %s: %s", chat_id, exc)
            raise


def _describe_user(update: Update) -> str:
    user = update.effective_user
    if user is None:
        return "Unknown"
    return user.username or user.first_name or "Unknown"


class SubscriptionCommands:
    """``/start``, ``/stop`` and ``/status`` handlers backed by the state store."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    async def start(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        try:
            added = await self._store.add_subscriber(chat_id)
            if added:
                log.info("User subscribed: chat=%s user=%s", chat_id, _describe_user(update))
                await update.effective_message.reply_text(SUBSCRIBED_TEXT, parse_mode=ParseMode.HTML)
            else:
                await update.effective_message.reply_text(
                    ALREADY_SUBSCRIBED_TEXT, parse_mode=ParseMode.HTML
                )
        except Exception:
            log.exception("Failed to handle /start for chat %s", chat_id)

    async def stop(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        try:
            removed = await self._store.remove_subscriber(chat_id)
            if removed:
                log.info("User unsubscribed: chat=%s user=%s", chat_id, _describe_user(update))
                await update.effective_message.reply_text(UNSUBSCRIBED_TEXT, parse_mode=ParseMode.HTML)
            else:
                await update.effective_message.reply_text(
                    NOT_SUBSCRIBED_TEXT, parse_mode=ParseMode.HTML
                )
        except Exception:
            log.exception("Failed to handle /stop for chat %s", chat_id)

    async def status(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id
        try:
            subscribed = await self._store.is_subscribed(chat_id)
            await update.effective_message.reply_text(
                STATUS_SUBSCRIBED_TEXT if subscribed else STATUS_NOT_SUBSCRIBED_TEXT,
                parse_mode=ParseMode.HTML,
            )
        except Exception:
            log.exception("Failed to handle /status for chat %s", chat_id)

    def handlers(self) -> list[CommandHandler]:
        return [
            CommandHandler("start", self.start),
            CommandHandler("stop", self.stop),
            CommandHandler("status", self.status),
        ]


def build_application(token: str, store: StateStore) -> Application:
    """Create the bot application with subscription commands registered.

    The caller scopes its lifetime with ``async with application:``.
    """
    app = Application.builder().token(token).build()
    app.add_handlers(SubscriptionCommands(store).handlers())
    log.info("Telegram command handlers registered")
    return app
