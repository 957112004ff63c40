from unittest.mock import Mock

import pytest

from deskbot.handlers.transcription import (
    TranscribeCommandHandler,
    TranscriptionMessageFormatter,
    TranscriptionModule,
)
from deskbot.schemas.telegram import TelegramAudio, TelegramFile, TelegramVideoNote, TelegramVoice
from deskbot.services.errors import TranscriptionError, TransportError
from deskbot.services.llm.base import TranscriptionClient, TranscriptionResult
from deskbot.services.transcription_service import TranscriptionService, resolve_target_message

from tests.factories import make_message, make_update, sent_texts

VOICE = TelegramVoice(file_id="voice-1", file_unique_id="u1", duration=3, mime_type="audio/ogg")


@pytest.fixture
def client():
    mock = Mock(spec=TranscriptionClient)
    mock.transcribe.return_value = TranscriptionResult(text="hello there", model="whisper-1", duration_seconds=1.5)
    return mock


@pytest.fixture
def audio_telegram(telegram):
    telegram.get_file.return_value = TelegramFile(file_id="voice-1", file_path="voice/file_1.oga")
    telegram.download_file.return_value = b"OggS..."
    return telegram


@pytest.fixture
def service(audio_telegram, client):
    return TranscriptionService(audio_telegram, client)


class TestTranscriptionResult:
    def test_defaults_are_normalised(self):
        result = TranscriptionResult(text=None, model=None, duration_seconds=-1)
        assert result.text == ""
        assert result.model == "unknown"
        assert result.duration_seconds == 0.0

    def test_nan_duration(self):
        assert TranscriptionResult(duration_seconds=float("nan")).duration_seconds == 0.0


class TestResolveTargetMessage:
    def test_reply_targets_original(self):
        original = make_message(None, message_id=5, voice=VOICE)
        reply = make_message("/transcribe", message_id=6, reply_to_message=original)
        assert resolve_target_message(reply) is original

    def test_plain_message_targets_itself(self):
        message = make_message("hi")
        assert resolve_target_message(message) is message


class TestTranscriptionService:
    def test_supports_voice_audio_and_video_notes(self, service):
        assert service.supports(make_message(voice=VOICE))
        assert service.supports(
            make_message(audio=TelegramAudio(file_id="a", file_unique_id="ua", duration=5, file_name="memo.mp3"))
        )
        assert service.supports(
            make_message(video_note=TelegramVideoNote(file_id="v", file_unique_id="uv", length=240, duration=4))
        )
        assert not service.supports(make_message("text only"))
        assert not service.supports(None)

    def test_transcribe_voice(self, service, audio_telegram, client):
        result = service.transcribe(make_message(voice=VOICE))

        assert result.text == "hello there"
        audio_telegram.get_file.assert_called_once_with("voice-1")
        audio_telegram.download_file.assert_called_once_with("voice/file_1.oga")
        client.transcribe.assert_called_once_with(b"OggS...", "voice.ogg", "audio/ogg")

    def test_audio_keeps_original_filename(self, service, client):
        audio = TelegramAudio(file_id="a", file_unique_id="ua", duration=5, file_name="memo.mp3", mime_type="audio/mpeg")
        service.transcribe(make_message(audio=audio))
        client.transcribe.assert_called_once_with(b"OggS...", "memo.mp3", "audio/mpeg")

    def test_audio_without_name_uses_file_path(self, service, client):
        audio = TelegramAudio(file_id="a", file_unique_id="ua", duration=5)
        service.transcribe(make_message(audio=audio))
        assert client.transcribe.call_args.args[1] == "file_1.oga"

    def test_transport_failure_becomes_transcription_error(self, service, audio_telegram):
        audio_telegram.get_file.side_effect = TransportError("Failed to resolve file voice-1: timeout")
        with pytest.raises(TranscriptionError) as exc:
            service.transcribe(make_message(voice=VOICE))
        assert "timeout" in exc.value.message

    def test_missing_file_path(self, service, audio_telegram):
        audio_telegram.get_file.return_value = TelegramFile(file_id="voice-1")
        with pytest.raises(TranscriptionError):
            service.transcribe(make_message(voice=VOICE))

    def test_message_without_audio(self, service):
        with pytest.raises(TranscriptionError):
            service.transcribe(make_message("text"))


class TestTranscriptionModule:
    def test_claims_audio_and_replies_to_audio(self, service, audio_telegram):
        module = TranscriptionModule(service, audio_telegram)
        original = make_message(None, message_id=5, voice=VOICE)

        assert module.can_handle(make_update(voice=VOICE), 1)
        assert module.can_handle(make_update("what was said?", reply_to_message=original), 1)
        assert not module.can_handle(make_update("hello"), 1)

    def test_handle_sends_typing_then_transcript(self, service, audio_telegram):
        module = TranscriptionModule(service, audio_telegram)

        module.handle(make_update(voice=VOICE), 1)

        audio_telegram.send_chat_action.assert_called_once_with(100, "typing", message_thread_id=None)
        assert sent_texts(audio_telegram) == ["Noted Transcription: (whisper-1)\n\nhello there"]

    def test_empty_transcript(self, service, audio_telegram, client):
        client.transcribe.return_value = TranscriptionResult(text="", model="whisper-1")
        TranscriptionModule(service, audio_telegram).handle(make_update(voice=VOICE), 1)
        assert sent_texts(audio_telegram) == ["Noted Transcription: (whisper-1)\n\n[No speech detected]"]

    def test_failure_is_reported(self, service, audio_telegram, client):
        client.transcribe.side_effect = TranscriptionError("OpenAI transcription error: 500")
        TranscriptionModule(service, audio_telegram).handle(make_update(voice=VOICE), 1)
        assert sent_texts(audio_telegram) == ["[Transcription Error] OpenAI transcription error: 500"]

    def test_contributes_transcribe_command(self, service, audio_telegram):
        commands = TranscriptionModule(service, audio_telegram).commands()
        assert [c.name for c in commands] == ["/transcribe"]


class TestTranscribeCommand:
    def test_without_audio_shows_usage(self, service, audio_telegram):
        formatter = TranscriptionMessageFormatter()
        command = TranscribeCommandHandler(service, formatter, audio_telegram)

        command.handle(make_update("/transcribe"), 1)

        assert sent_texts(audio_telegram) == [formatter.format_usage()]
        audio_telegram.get_file.assert_not_called()

    def test_reply_to_voice_transcribes_it(self, service, audio_telegram):
        command = TranscribeCommandHandler(service, TranscriptionMessageFormatter(), audio_telegram)
        original = make_message(None, message_id=5, voice=VOICE)

        command.handle(make_update("/transcribe", reply_to_message=original), 1)

        assert sent_texts(audio_telegram) == ["Noted Transcription: (whisper-1)\n\nhello there"]
