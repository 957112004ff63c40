import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deskbot.logging_config import get_logger
from deskbot.models import TicketSessionRow
from deskbot.services.errors import PersistenceError
from deskbot.services.ticketing.domain import Step, TicketDraft

logger = get_logger("ticket_sessions")

# Draft step -> ticket_sessions column
_STEP_COLUMNS = {
    Step.SUMMARY: "summary",
    Step.PRIORITY: "priority",
    Step.DETAILS: "details",
    Step.CONFIRMATION: "confirmation",
}


class TicketSessionManager(ABC):
    """Keeps one draft per (chat_id, user_id) while a ticket is being collected."""

    @abstractmethod
    def open_session(self, chat_id: int, user_id: int) -> None:
        """Start an empty draft, replacing any existing one."""

    @abstractmethod
    def get_draft(self, chat_id: int, user_id: int) -> Optional[TicketDraft]:
        pass

    @abstractmethod
    def update_draft(self, chat_id: int, user_id: int, draft: TicketDraft) -> None:
        """Store the draft, opening a session first if none exists."""

    @abstractmethod
    def close_session(self, chat_id: int, user_id: int) -> None:
        pass


class InMemoryTicketSessionManager(TicketSessionManager):
    def __init__(self):
        self._lock = threading.Lock()
        self._drafts: dict[tuple[int, int], TicketDraft] = {}

    def open_session(self, chat_id: int, user_id: int) -> None:
        with self._lock:
            self._drafts[(chat_id, user_id)] = TicketDraft()
        logger.info(f"Opened ticket session for chat {chat_id}, user {user_id}")

    def get_draft(self, chat_id: int, user_id: int) -> Optional[TicketDraft]:
        with self._lock:
            draft = self._drafts.get((chat_id, user_id))
            # Callers mutate drafts; hand out copies so only update_draft writes.
            return draft.copy() if draft else None

    def update_draft(self, chat_id: int, user_id: int, draft: TicketDraft) -> None:
        with self._lock:
            self._drafts[(chat_id, user_id)] = draft.copy()

    def close_session(self, chat_id: int, user_id: int) -> None:
        with self._lock:
            self._drafts.pop((chat_id, user_id), None)
        logger.info(f"Closed ticket session for chat {chat_id}, user {user_id}")


class SqlTicketSessionManager(TicketSessionManager):
    """Draft storage on the `ticket_sessions` table, so drafts survive restarts."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _find(self, db: Session, chat_id: int, user_id: int) -> Optional[TicketSessionRow]:
        return (
            db.query(TicketSessionRow)
            .filter(TicketSessionRow.chat_id == chat_id, TicketSessionRow.user_id == user_id)
            .first()
        )

    def open_session(self, chat_id: int, user_id: int) -> None:
        db = self.session_factory()
        try:
            existing = self._find(db, chat_id, user_id)
            if existing is not None:
                db.delete(existing)
                db.flush()
            db.add(TicketSessionRow(chat_id=chat_id, user_id=user_id))
            db.commit()
            logger.info(f"Opened ticket session for chat {chat_id}, user {user_id}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to open session for chat {chat_id}, user {user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to open ticket session") from e
        finally:
            db.close()

    def get_draft(self, chat_id: int, user_id: int) -> Optional[TicketDraft]:
        db = self.session_factory()
        try:
            row = self._find(db, chat_id, user_id)
            if row is None:
                return None

            draft = TicketDraft(ticket_id=row.ticket_id)
            for step, column in _STEP_COLUMNS.items():
                value = getattr(row, column)
                if value is not None:
                    draft.put(step, value)
            return draft
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch session for chat {chat_id}, user {user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to fetch ticket session") from e
        finally:
            db.close()

    def update_draft(self, chat_id: int, user_id: int, draft: TicketDraft) -> None:
        db = self.session_factory()
        try:
            row = self._find(db, chat_id, user_id)
            if row is None:
                row = TicketSessionRow(chat_id=chat_id, user_id=user_id)
                db.add(row)

            row.ticket_id = draft.ticket_id
            for step, column in _STEP_COLUMNS.items():
                setattr(row, column, draft.get(step))
            db.commit()
            logger.debug(f"Updated ticket session for chat {chat_id}, user {user_id}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update session for chat {chat_id}, user {user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to update ticket session") from e
        finally:
            db.close()

    def close_session(self, chat_id: int, user_id: int) -> None:
        db = self.session_factory()
        try:
            db.query(TicketSessionRow).filter(
                TicketSessionRow.chat_id == chat_id, TicketSessionRow.user_id == user_id
            ).delete()
            db.commit()
            logger.info(f"Closed ticket session for chat {chat_id}, user {user_id}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to close session for chat {chat_id}, user {user_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to close ticket session") from e
        finally:
            db.close()
