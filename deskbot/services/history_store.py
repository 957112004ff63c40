import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deskbot.logging_config import get_logger
from deskbot.models import Message
from deskbot.services.errors import PersistenceError

logger = get_logger("history_store")


@dataclass(frozen=True)
class LoggedMessage:
    """One user request and the reply generated for it."""

    user_id: int
    chat_id: int
    request_text: str
    reply_text: str


class MessageLogRepository(ABC):
    """Persisted request/reply pairs per chat and user."""

    @abstractmethod
    def save(self, message: LoggedMessage) -> None:
        pass

    @abstractmethod
    def find_recent(self, chat_id: int, user_id: int, limit: int) -> List[LoggedMessage]:
        """Most recent `limit` pairs, ordered oldest to newest."""


class NoopMessageLogRepository(MessageLogRepository):
    def save(self, message: LoggedMessage) -> None:
        return None

    def find_recent(self, chat_id: int, user_id: int, limit: int) -> List[LoggedMessage]:
        return []


class InMemoryMessageLogRepository(MessageLogRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._messages: list[LoggedMessage] = []

    def save(self, message: LoggedMessage) -> None:
        with self._lock:
            self._messages.append(message)

    def find_recent(self, chat_id: int, user_id: int, limit: int) -> List[LoggedMessage]:
        if limit <= 0:
            return []
        with self._lock:
            matching = [m for m in self._messages if m.chat_id == chat_id and m.user_id == user_id]
        return matching[-limit:]


class SqlMessageLogRepository(MessageLogRepository):
    """Pairs stored in the `messages` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def save(self, message: LoggedMessage) -> None:
        db = self.session_factory()
        try:
            db.add(
                Message(
                    user_id=message.user_id,
                    chat_id=message.chat_id,
                    text=message.request_text,
                    reply=message.reply_text,
                    created_at=datetime.now(timezone.utc),
                )
            )
            db.commit()
            logger.debug(f"Persisted message for user {message.user_id} in chat {message.chat_id}")
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("Failed to persist message") from e
        finally:
            db.close()

    def find_recent(self, chat_id: int, user_id: int, limit: int) -> List[LoggedMessage]:
        if limit <= 0:
            return []

        db = self.session_factory()
        try:
            rows = (
                db.query(Message)
                .filter(Message.chat_id == chat_id, Message.user_id == user_id)
                .order_by(Message.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load message history") from e
        finally:
            db.close()

        return [
            LoggedMessage(user_id=user_id, chat_id=chat_id, request_text=row.text or "", reply_text=row.reply or "")
            for row in reversed(rows)
        ]
