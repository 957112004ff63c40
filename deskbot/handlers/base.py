from abc import ABC, abstractmethod
from typing import List, Optional

from deskbot.schemas.telegram import TelegramUpdate


def message_context(update: TelegramUpdate) -> tuple[int, Optional[int], str]:
    """chat id, thread id and trimmed text of the update's message."""
    message = update.message
    return message.chat.id, message.message_thread_id, (message.text or "").strip()


class CommandHandler(ABC):
    """A slash-command such as /ticket."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        pass


class MessageHandler(ABC):
    """A module that may claim a non-command update."""

    name: str = ""

    @abstractmethod
    def can_handle(self, update: TelegramUpdate, user_id: int) -> bool:
        pass

    @abstractmethod
    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        pass

    def commands(self) -> List[CommandHandler]:
        """Commands contributed by this module."""
        return []
