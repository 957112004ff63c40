from deskbot.services.llm.base import ChatCompletionClient, LLMResponse, TranscriptionClient, TranscriptionResult
from deskbot.services.llm.openai_provider import OpenAIProvider

__all__ = ["ChatCompletionClient", "LLMResponse", "TranscriptionClient", "TranscriptionResult", "OpenAIProvider"]
