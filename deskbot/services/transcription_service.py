from typing import Optional

from deskbot.logging_config import get_logger
from deskbot.schemas.telegram import TelegramMessage
from deskbot.services.errors import TranscriptionError, TransportError
from deskbot.services.llm.base import TranscriptionClient, TranscriptionResult
from deskbot.services.telegram_service import TelegramService

logger = get_logger("transcription_service")


def resolve_target_message(message: Optional[TelegramMessage]) -> Optional[TelegramMessage]:
    """A reply points at the message being transcribed; otherwise the message itself is the target."""
    if message is not None and message.reply_to_message is not None:
        return message.reply_to_message
    return message


class TranscriptionService:
    """Downloads Telegram audio and forwards it to the transcription backend."""

    def __init__(self, telegram: TelegramService, client: TranscriptionClient):
        self.telegram = telegram
        self.client = client

    def supports(self, message: Optional[TelegramMessage]) -> bool:
        return message is not None and message.has_audio_content()

    def transcribe(self, message: TelegramMessage) -> TranscriptionResult:
        if not self.supports(message):
            raise TranscriptionError("Message does not include transcribable audio.")

        file_id, filename, mime_type = self._describe_audio(message)
        try:
            telegram_file = self.telegram.get_file(file_id)
            if not telegram_file.file_path:
                raise TranscriptionError("Telegram did not return a file path for the audio.")
            audio_bytes = self.telegram.download_file(telegram_file.file_path)
        except TransportError as e:
            raise TranscriptionError(e.message) from e

        filename = filename or telegram_file.file_path.rsplit("/", 1)[-1]
        logger.info(f"Transcribing {len(audio_bytes)} bytes from message {message.message_id}")
        return self.client.transcribe(audio_bytes, filename, mime_type)

    def _describe_audio(self, message: TelegramMessage) -> tuple[str, Optional[str], Optional[str]]:
        if message.voice is not None:
            return message.voice.file_id, "voice.ogg", message.voice.mime_type or "audio/ogg"
        if message.audio is not None:
            return message.audio.file_id, message.audio.file_name, message.audio.mime_type
        return message.video_note.file_id, "video_note.mp4", "video/mp4"
