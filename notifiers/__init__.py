from notifiers.base import Messenger
from notifiers.telegram_bot import SubscriptionCommands, TelegramMessenger, build_application

__all__ = ["Messenger", "SubscriptionCommands", "TelegramMessenger", "build_application"]
