from typing import Callable, List, Optional

from deskbot.handlers.base import MessageHandler
from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.commands import CommandRegistry
from deskbot.services.locks import KeyedLocks
from deskbot.services.result import Result
from deskbot.services.telegram_service import TelegramService
from deskbot.services.user_service import UserService

logger = get_logger("update_router")


class UpdateRouter:
    """
    Routes one inbound update to exactly one handler.

    1. Updates without a message or without a sender are ignored.
    2. The sender is resolved to an internal user id; failure is reported to the chat.
    3. Text starting with the command prefix goes to the command registry and stops there.
    4. Anything else is offered to the modules in registration order; the first whose
       can_handle() is true handles it. The conversational relay is registered last.

    Updates from the same chat and sender are processed one at a time, in call order.
    """

    def __init__(
        self,
        commands: CommandRegistry,
        user_service: UserService,
        telegram: TelegramService,
        modules: List[MessageHandler],
        command_prefix: str = "/",
    ):
        self.commands = commands
        self.user_service = user_service
        self.telegram = telegram
        self.modules = list(modules)
        self.command_prefix = command_prefix
        self._locks = KeyedLocks()

    def route(self, update: Optional[TelegramUpdate]) -> Result[str]:
        if update is None or update.message is None:
            logger.debug("Ignored update without message content")
            return Result.failure("Update has no message", "no_message")

        message = update.message
        chat_id = message.chat.id
        thread_id = message.message_thread_id
        text = (message.text or "").strip()
        sender = message.from_user

        if sender is None:
            logger.warning(f"Received message in chat {chat_id} without sender metadata; update ignored")
            return Result.failure("Message has no sender", "no_sender")

        logger.info(
            "Received update",
            extra={"context": {"chat_id": chat_id, "telegram_user_id": sender.id, "has_text": bool(text)}},
        )

        with self._locks.get((chat_id, sender.id)):
            try:
                user_id = self.user_service.ensure_user(sender).id
            except Exception as e:
                logger.error(f"Failed to resolve user for chat {chat_id}: {e}", exc_info=True)
                self.telegram.send_message(
                    chat_id, f"[Error] Failed to resolve user: {e}", message_thread_id=thread_id
                )
                return Result.failure(str(e), "user_error")

            if text and text.startswith(self.command_prefix):
                return self._dispatch_command(update, text, user_id, chat_id, thread_id)

            for module in self.modules:
                if module.can_handle(update, user_id):
                    return self._invoke(
                        f"module:{module.name}", lambda: module.handle(update, user_id), user_id, chat_id, thread_id
                    )

        logger.debug(f"No module claimed update {update.update_id}")
        return Result.failure("No module claimed the update", "unhandled")

    def _dispatch_command(
        self, update: TelegramUpdate, text: str, user_id: int, chat_id: int, thread_id: Optional[int]
    ) -> Result[str]:
        token = text.split(None, 1)[0].lower()
        handler = self.commands.find(token)
        if handler is None:
            logger.warning(f"User {user_id} invoked unknown command {token}")
            self.telegram.send_message(chat_id, f"Unknown command: {token}", message_thread_id=thread_id)
            return Result.failure(f"Unknown command: {token}", "unknown_command")

        logger.info(f"Executing command {handler.name} for user {user_id}")
        return self._invoke(
            f"command:{handler.name}", lambda: handler.handle(update, user_id), user_id, chat_id, thread_id
        )

    def _invoke(
        self, label: str, call: Callable[[], None], user_id: int, chat_id: int, thread_id: Optional[int]
    ) -> Result[str]:
        try:
            call()
        except Exception as e:
            logger.error(f"{label} failed for user {user_id} in chat {chat_id}: {e}", exc_info=True)
            self.telegram.send_message(chat_id, f"[Error] {e}", message_thread_id=thread_id)
            return Result.failure(str(e), "handler_error")
        return Result.success(label)
