from deskbot.handlers.base import MessageHandler, message_context
from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.conversation_context import ConversationContextCache
from deskbot.services.history_store import LoggedMessage, MessageLogRepository
from deskbot.services.llm.base import ChatCompletionClient
from deskbot.services.telegram_service import TelegramService

logger = get_logger("handlers.relay")


class ConversationalRelayModule(MessageHandler):
    """Fallback module: relays free-form chat to the language model with short-term context."""

    name = "relay"

    def __init__(
        self,
        context: ConversationContextCache,
        completion: ChatCompletionClient,
        message_log: MessageLogRepository,
        telegram: TelegramService,
    ):
        self.context = context
        self.completion = completion
        self.message_log = message_log
        self.telegram = telegram

    def can_handle(self, update: TelegramUpdate, user_id: int) -> bool:
        return True

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        if update.message is None or not update.message.text:
            logger.debug(f"Relay skipped non-text update for user {user_id}")
            return

        chat_id, thread_id, _ = message_context(update)
        user_text = update.message.text

        try:
            self.telegram.send_chat_action(chat_id, "typing", message_thread_id=thread_id)

            request = self.context.build_request_messages(chat_id, user_id, user_text)
            reply_text = self.completion.complete(request)
            logger.info(f"Model responded to user {user_id} with {len(reply_text)} characters")

            self.context.record_exchange(chat_id, user_id, user_text, reply_text)
            self.message_log.save(
                LoggedMessage(user_id=user_id, chat_id=chat_id, request_text=user_text, reply_text=reply_text)
            )
            self.telegram.send_message(chat_id, reply_text, message_thread_id=thread_id)
        except Exception as e:
            logger.error(f"Failed to handle general message for user {user_id}: {e}", exc_info=True)
            self.telegram.send_message(
                chat_id, f"[Error] Failed to process message: {e}", message_thread_id=thread_id
            )
