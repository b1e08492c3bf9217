from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ParseMode
from telegram.error import NetworkError
from telegram.ext import CommandHandler

from notifiers.telegram_bot import (
    ALREADY_SUBSCRIBED_TEXT,
    NOT_SUBSCRIBED_TEXT,
    STATUS_NOT_SUBSCRIBED_TEXT,
    STATUS_SUBSCRIBED_TEXT,
    SUBSCRIBED_TEXT,
    UNSUBSCRIBED_TEXT,
    SubscriptionCommands,
    TelegramMessenger,
    build_application,
)


def _bot(side_effect=None):
    bot = MagicMock()
    bot.send_message = AsyncMock(side_effect=side_effect, return_value=MagicMock(message_id=77))
    return bot


def _update(chat_id=555, username="watcher"):
    update = MagicMock()
    update.effective_chat.id = chat_id
    update.effective_user.username = username
    update.effective_message.reply_text = AsyncMock()
    return update


def _reply(update):
    return update.effective_message.reply_text.await_args.args[0]


class TestTelegramMessenger:
    @pytest.mark.asyncio
    async def test_sends_html_without_previews(self):
        bot = _bot()
        await TelegramMessenger(bot, retry_attempts=1, retry_delay_ms=0).send(42, "<b>hi</b>")

        kwargs = bot.send_message.await_args.kwargs
        assert kwargs["chat_id"] == 42
        assert kwargs["text"] == "<b>hi</b>"
        assert kwargs["parse_mode"] == ParseMode.HTML
        assert kwargs["link_preview_options"].is_disabled is True

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        bot = _bot(side_effect=[NetworkError("flaky"), MagicMock(message_id=1)])
        await TelegramMessenger(bot, retry_attempts=3, retry_delay_ms=0).send(42, "x")
        assert bot.send_message.await_count == 2

    @pytest.mark.asyncio
    async def test_raises_after_exhaustion(self):
        bot = _bot(side_effect=NetworkError("down"))
        with pytest.raises(NetworkError):
            await TelegramMessenger(bot, retry_attempts=2, retry_delay_ms=0).send(42, "x")
        assert bot.send_message.await_count == 2


class TestSubscriptionCommands:
    @pytest.mark.asyncio
    async def test_start_subscribes(self, store):
        commands = SubscriptionCommands(store)
        update = _update()

        await commands.start(update, None)

        assert await store.list_subscribers() == [555]
        assert _reply(update) == SUBSCRIBED_TEXT

    @pytest.mark.asyncio
    async def test_start_twice_reports_existing(self, store):
        commands = SubscriptionCommands(store)
        await commands.start(_update(), None)
        update = _update()

        await commands.start(update, None)

        assert await store.list_subscribers() == [555]
        assert _reply(update) == ALREADY_SUBSCRIBED_TEXT

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, store):
        commands = SubscriptionCommands(store)
        await store.add_subscriber(555)
        update = _update()

        await commands.stop(update, None)

        assert await store.list_subscribers() == []
        assert _reply(update) == UNSUBSCRIBED_TEXT

    @pytest.mark.asyncio
    async def test_stop_when_not_subscribed(self, store):
        update = _update()
        await SubscriptionCommands(store).stop(update, None)
        assert _reply(update) == NOT_SUBSCRIBED_TEXT

    @pytest.mark.asyncio
    async def test_status(self, store):
        commands = SubscriptionCommands(store)
        update = _update()
        await commands.status(update, None)
        assert _reply(update) == STATUS_NOT_SUBSCRIBED_TEXT

        await store.add_subscriber(555)
        update = _update()
        await commands.status(update, None)
        assert _reply(update) == STATUS_SUBSCRIBED_TEXT

    @pytest.mark.asyncio
    async def test_reply_failure_is_logged(self, store, caplog):
        update = _update()
        update.effective_message.reply_text.side_effect = NetworkError("down")

        await SubscriptionCommands(store).start(update, None)

        assert await store.list_subscribers() == [555]
        assert "Failed to handle /start" in caplog.text


def test_build_application_registers_commands(store):
    app = build_application("123456:TEST-token", store)

    handlers = [h for group in app.handlers.values() for h in group]
    assert all(isinstance(h, CommandHandler) for h in handlers)
    assert sorted(c for h in handlers for c in h.commands) == ["start", "status", "stop"]
