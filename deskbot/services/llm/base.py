import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from deskbot.services.conversation_context import ConversationMessage


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


@dataclass(frozen=True)
class TranscriptionResult:
    text: str = ""
    model: str = "unknown"
    duration_seconds: float = 0.0

    def __post_init__(self):
        if self.text is None:
            object.__setattr__(self, "text", "")
        if self.model is None:
            object.__setattr__(self, "model", "unknown")
        if self.duration_seconds is None or math.isnan(self.duration_seconds) or self.duration_seconds < 0:
            object.__setattr__(self, "duration_seconds", 0.0)


class ChatCompletionClient(ABC):
    """Language model backend used by the conversational relay."""

    @abstractmethod
    def complete(self, messages: List[ConversationMessage]) -> str:
        """Return the assistant reply for the ordered messages. May raise."""
        pass


class TranscriptionClient(ABC):
    """Speech-to-text backend."""

    @abstractmethod
    def transcribe(self, audio_bytes: bytes, filename: str, mime_type: Optional[str] = None) -> TranscriptionResult:
        pass
