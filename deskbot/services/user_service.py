import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deskbot.logging_config import get_logger
from deskbot.models import User
from deskbot.schemas.telegram import TelegramUser
from deskbot.services.errors import PersistenceError

logger = get_logger("user_service")


@dataclass(frozen=True)
class UserRecord:
    """Telegram user synchronised with the bot's own user table."""

    id: int
    telegram_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        if parts:
            return " ".join(parts)
        return self.username or str(self.telegram_id)


class UserService(ABC):
    """Resolves Telegram senders to internal user ids."""

    @abstractmethod
    def ensure_user(self, telegram_user: TelegramUser) -> UserRecord:
        """Find or create the internal record. Raises PersistenceError on storage failure."""

    @abstractmethod
    def find_by_telegram_id(self, telegram_id: int) -> Optional[UserRecord]:
        pass


class InMemoryUserService(UserService):
    def __init__(self):
        self._lock = threading.Lock()
        self._users: dict[int, UserRecord] = {}
        self._ids = itertools.count(1)

    def ensure_user(self, telegram_user: TelegramUser) -> UserRecord:
        with self._lock:
            existing = self._users.get(telegram_user.id)
            if existing is not None:
                return existing
            record = UserRecord(
                id=next(self._ids),
                telegram_id=telegram_user.id,
                username=telegram_user.username,
                first_name=telegram_user.first_name,
                last_name=telegram_user.last_name,
            )
            self._users[telegram_user.id] = record
        logger.info(f"Registered user {record.id} for telegram id {record.telegram_id}")
        return record

    def find_by_telegram_id(self, telegram_id: int) -> Optional[UserRecord]:
        with self._lock:
            return self._users.get(telegram_id)


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        telegram_id=user.telegram_id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


class SqlUserService(UserService):
    """Users stored in the `users` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def ensure_user(self, telegram_user: TelegramUser) -> UserRecord:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.telegram_id == telegram_user.id).first()
            if not user:
                user = User(
                    telegram_id=telegram_user.id,
                    username=telegram_user.username,
                    first_name=telegram_user.first_name,
                    last_name=telegram_user.last_name,
                    created_at=datetime.now(timezone.utc),
                )
                db.add(user)
                db.commit()
                db.refresh(user)
                logger.info(f"Registered user {user.id} for telegram id {user.telegram_id}")
            return _to_record(user)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to resolve user for telegram id {telegram_user.id}") from e
        finally:
            db.close()

    def find_by_telegram_id(self, telegram_id: int) -> Optional[UserRecord]:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.telegram_id == telegram_id).first()
            return _to_record(user) if user else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to look up telegram id {telegram_id}") from e
        finally:
            db.close()
