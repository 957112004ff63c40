from typing import Optional

from deskbot.handlers.base import CommandHandler, message_context
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.commands import CommandRegistry
from deskbot.services.telegram_service import TelegramService


class MenuCommandHandler(CommandHandler):
    """Lists the other registered commands."""

    name = "/menu"
    description = "Show the available bot commands."

    def __init__(self, telegram: TelegramService, registry: Optional[CommandRegistry] = None):
        self.telegram = telegram
        # Bound after the registry is built, since the registry contains this handler.
        self.registry = registry

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        chat_id, thread_id, _ = message_context(update)
        lines = ["Available commands:"]
        if self.registry is not None:
            lines.extend(f"{handler.name} - {handler.description}" for handler in self.registry.handlers(exclude=self))
        self.telegram.send_message(chat_id, "\n".join(lines), message_thread_id=thread_id)
