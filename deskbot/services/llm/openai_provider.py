from typing import List, Optional

import httpx

from deskbot.logging_config import get_logger
from deskbot.services.conversation_context import ConversationMessage
from deskbot.services.errors import TranscriptionError, TransportError
from deskbot.services.llm.base import ChatCompletionClient, LLMResponse, TranscriptionClient, TranscriptionResult

logger = get_logger("llm.openai")

SYSTEM_PROMPT = "You are a helpful assistant in a Telegram chat. Keep answers concise."


class OpenAIProvider(ChatCompletionClient, TranscriptionClient):
    """OpenAI API provider for chat completions and Whisper transcription."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        transcription_model: str = "whisper-1",
        system_prompt: Optional[str] = SYSTEM_PROMPT,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.transcription_model = transcription_model
        self.system_prompt = system_prompt
        self.base_url = "https://api.openai.com/v1/chat/completions"
        self.audio_url = "https://api.openai.com/v1/audio/transcriptions"

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response from OpenAI."""

        model = model or self.default_model

        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
        }
        logger.debug(f"OpenAI request: model={model}, messages_count={len(messages)}")

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise TransportError(f"OpenAI request failed: {e}") from e

        logger.debug(f"OpenAI response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"OpenAI error: {response.text}")
            raise TransportError(f"OpenAI API error: {response.status_code} - {response.text}")

        data = response.json()

        content = ""
        if data.get("choices"):
            message = data["choices"][0].get("message", {})
            content = message.get("content") or ""
        logger.debug(f"OpenAI content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )

    def complete(self, messages: List[ConversationMessage]) -> str:
        payload = [message.as_openai() for message in messages]
        if self.system_prompt:
            payload.insert(0, {"role": "system", "content": self.system_prompt})
        return self.generate(payload).content.strip()

    def transcribe(
        self,
        audio_bytes: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> TranscriptionResult:
        """Transcribe audio using OpenAI speech-to-text."""
        if not audio_bytes:
            raise TranscriptionError("Downloaded audio is empty.")

        files = {"file": (filename or "audio", audio_bytes, mime_type or "application/octet-stream")}
        data = {"model": self.transcription_model, "response_format": "verbose_json"}

        timeout = timeout_seconds if timeout_seconds is not None else 30.0
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(
                    self.audio_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                    },
                    files=files,
                    data=data,
                )
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        logger.debug(f"OpenAI transcription status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"OpenAI transcription error: {response.text}")
            raise TranscriptionError(f"OpenAI transcription error: {response.status_code}")

        body = response.json()
        transcript = (body.get("text") or "").strip()
        if not transcript:
            logger.warning("OpenAI transcription returned empty text")
        return TranscriptionResult(
            text=transcript,
            model=self.transcription_model,
            duration_seconds=float(body.get("duration") or 0.0),
        )
