import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List

from deskbot.logging_config import get_logger
from deskbot.services.history_store import MessageLogRepository

logger = get_logger("conversation_context")

DEFAULT_MAX_MESSAGES = 20
MIN_MAX_MESSAGES = 2


@dataclass(frozen=True)
class ConversationMessage:
    role: str  # user, assistant
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    def as_openai(self) -> dict:
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Bounded FIFO of messages for one chat/user pair, seeded at most once."""

    def __init__(self, max_entries: int):
        self.max_entries = max_entries
        self._messages: deque[ConversationMessage] = deque()
        self._lock = threading.Lock()
        self.seeded = False

    def seed_if_necessary(self, loader: Callable[[], List[ConversationMessage]]) -> None:
        with self._lock:
            if self.seeded:
                return
            for message in loader() or []:
                self._append(message)
            self.seeded = True

    def snapshot(self) -> List[ConversationMessage]:
        with self._lock:
            return list(self._messages)

    def append(self, *messages: ConversationMessage) -> None:
        with self._lock:
            for message in messages:
                self._append(message)

    def _append(self, message: ConversationMessage) -> None:
        self._messages.append(message)
        while len(self._messages) > self.max_entries:
            self._messages.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)


class ConversationContextCache:
    """
    Short-term memory for the conversational relay.

    Each chat/user pair gets a bounded buffer. On first access the buffer is seeded from the
    most recent persisted exchanges; afterwards it is kept up to date in memory only.
    """

    def __init__(self, message_log: MessageLogRepository, max_messages: int = DEFAULT_MAX_MESSAGES):
        self.message_log = message_log
        self.max_messages = max(MIN_MAX_MESSAGES, max_messages)
        self._histories: dict[tuple[int, int], ConversationHistory] = {}
        self._guard = threading.Lock()

    def build_request_messages(self, chat_id: int, user_id: int, user_text: str) -> List[ConversationMessage]:
        """Cached context plus the new user message, ready to send to the model."""
        if user_text is None:
            raise ValueError("user_text must not be None")

        history = self._history(chat_id, user_id)
        snapshot = history.snapshot()
        request = snapshot + [ConversationMessage(role="user", content=user_text)]
        logger.debug(
            f"Prepared {len(request)} context messages ({len(snapshot)} prior) for chat {chat_id}, user {user_id}"
        )
        return request

    def record_exchange(self, chat_id: int, user_id: int, user_text: str, assistant_reply: str) -> None:
        if user_text is None or assistant_reply is None:
            raise ValueError("user_text and assistant_reply must not be None")

        history = self._history(chat_id, user_id)
        history.append(
            ConversationMessage(role="user", content=user_text),
            ConversationMessage(role="assistant", content=assistant_reply),
        )
        logger.debug(f"Recorded exchange for chat {chat_id}, user {user_id}; context holds {len(history)} messages")

    def reset_conversation(self, chat_id: int, user_id: int) -> None:
        with self._guard:
            self._histories.pop((chat_id, user_id), None)

    def _history(self, chat_id: int, user_id: int) -> ConversationHistory:
        key = (chat_id, user_id)
        with self._guard:
            history = self._histories.get(key)
            if history is None:
                history = ConversationHistory(self.max_messages)
                self._histories[key] = history
        # Seeding holds only this key's lock.
        history.seed_if_necessary(lambda: self._load_from_store(chat_id, user_id))
        return history

    def _load_from_store(self, chat_id: int, user_id: int) -> List[ConversationMessage]:
        try:
            stored = self.message_log.find_recent(chat_id, user_id, self.max_messages // 2)
        except Exception as e:
            logger.warning(
                f"Failed to load conversation history for chat {chat_id}, user {user_id}: {e}",
                exc_info=True,
            )
            return []

        messages: List[ConversationMessage] = []
        for logged in stored:
            if logged.request_text and logged.request_text.strip():
                messages.append(ConversationMessage(role="user", content=logged.request_text))
            if logged.reply_text and logged.reply_text.strip():
                messages.append(ConversationMessage(role="assistant", content=logged.reply_text))

        if len(messages) > self.max_messages:
            messages = messages[-self.max_messages :]

        logger.debug(f"Loaded {len(messages)} messages of history for chat {chat_id}, user {user_id}")
        return messages
