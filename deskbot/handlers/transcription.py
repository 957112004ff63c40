from typing import List

from deskbot.handlers.base import CommandHandler, MessageHandler, message_context
from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramUpdate
from deskbot.services.errors import DeskbotError
from deskbot.services.llm.base import TranscriptionResult
from deskbot.services.telegram_service import TelegramService
from deskbot.services.transcription_service import TranscriptionService, resolve_target_message

logger = get_logger("handlers.transcription")


class TranscriptionMessageFormatter:
    def format_usage(self) -> str:
        return "Send a voice message or reply with /transcribe to convert audio into text."

    def format_result(self, result: TranscriptionResult) -> str:
        text = result.text or "[No speech detected]"
        return f"Noted Transcription: ({result.model})\n\n{text}"

    def format_error(self, error: str) -> str:
        return f"[Transcription Error] {error}"


def _transcribe_and_reply(
    service: TranscriptionService,
    formatter: TranscriptionMessageFormatter,
    telegram: TelegramService,
    update: TelegramUpdate,
    user_id: int,
) -> None:
    chat_id, thread_id, _ = message_context(update)
    target = resolve_target_message(update.message)

    telegram.send_chat_action(chat_id, "typing", message_thread_id=thread_id)
    try:
        result = service.transcribe(target)
    except DeskbotError as e:
        logger.error(f"Transcription failed for user {user_id}: {e.message}")
        telegram.send_message(chat_id, formatter.format_error(e.message), message_thread_id=thread_id)
        return

    telegram.send_message(chat_id, formatter.format_result(result), message_thread_id=thread_id)
    logger.info(f"Delivered transcription to user {user_id}")


class TranscribeCommandHandler(CommandHandler):
    name = "/transcribe"
    description = "Convert a voice message to text."

    def __init__(
        self, service: TranscriptionService, formatter: TranscriptionMessageFormatter, telegram: TelegramService
    ):
        self.service = service
        self.formatter = formatter
        self.telegram = telegram

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        if not self.service.supports(resolve_target_message(update.message)):
            chat_id, thread_id, _ = message_context(update)
            logger.debug(f"User {user_id} invoked transcription without audio payload")
            self.telegram.send_message(chat_id, self.formatter.format_usage(), message_thread_id=thread_id)
            return
        _transcribe_and_reply(self.service, self.formatter, self.telegram, update, user_id)


class TranscriptionModule(MessageHandler):
    """Transcribes voice, audio and video notes, directly or via a reply."""

    name = "transcription"

    def __init__(self, service: TranscriptionService, telegram: TelegramService):
        self.service = service
        self.telegram = telegram
        self.formatter = TranscriptionMessageFormatter()
        self.command = TranscribeCommandHandler(service, self.formatter, telegram)

    def can_handle(self, update: TelegramUpdate, user_id: int) -> bool:
        if update.message is None:
            return False
        return self.service.supports(resolve_target_message(update.message))

    def handle(self, update: TelegramUpdate, user_id: int) -> None:
        _transcribe_and_reply(self.service, self.formatter, self.telegram, update, user_id)

    def commands(self) -> List[CommandHandler]:
        return [self.command]
