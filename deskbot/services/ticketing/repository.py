import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deskbot.logging_config import get_logger
from deskbot.models import TicketRow
from deskbot.services.errors import NotFoundError, PersistenceError
from deskbot.services.ticketing.domain import Ticket, TicketPriority, TicketStatus

logger = get_logger("ticket_repository")


class TicketRepository(ABC):
    """Storage for ticket snapshots."""

    @abstractmethod
    def create_draft(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket and return it with its id assigned."""

    @abstractmethod
    def find_by_id(self, ticket_id: int) -> Optional[Ticket]:
        pass

    @abstractmethod
    def find_all_for_user(self, user_id: int) -> List[Ticket]:
        """Tickets created by the user, id ascending."""

    @abstractmethod
    def save(self, ticket: Ticket) -> Ticket:
        """Overwrite an existing ticket. Raises NotFoundError for unknown ids."""


class InMemoryTicketRepository(TicketRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._tickets: dict[int, Ticket] = {}
        self._ids = itertools.count(1)

    def create_draft(self, ticket: Ticket) -> Ticket:
        with self._lock:
            stored = ticket.with_changes(id=next(self._ids))
            self._tickets[stored.id] = stored
        logger.debug(f"Inserted ticket {stored.id} for user {stored.created_by}")
        return stored

    def find_by_id(self, ticket_id: int) -> Optional[Ticket]:
        with self._lock:
            return self._tickets.get(ticket_id)

    def find_all_for_user(self, user_id: int) -> List[Ticket]:
        with self._lock:
            return [self._tickets[key] for key in sorted(self._tickets) if self._tickets[key].created_by == user_id]

    def save(self, ticket: Ticket) -> Ticket:
        with self._lock:
            if ticket.id not in self._tickets:
                raise NotFoundError(f"Ticket not found: {ticket.id}")
            self._tickets[ticket.id] = ticket
        return ticket


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_ticket(row: TicketRow) -> Ticket:
    return Ticket(
        id=row.id,
        status=TicketStatus(row.status),
        priority=TicketPriority(row.priority),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        created_by=row.created_by,
        assignee=row.assignee,
        summary=row.summary or "",
        details=row.details or "",
    )


class SqlTicketRepository(TicketRepository):
    """Ticket storage on the `tickets` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def create_draft(self, ticket: Ticket) -> Ticket:
        db = self.session_factory()
        try:
            row = TicketRow(
                status=ticket.status.value,
                priority=ticket.priority.value,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
                created_by=ticket.created_by,
                assignee=ticket.assignee,
                summary=ticket.summary,
                details=ticket.details,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.debug(f"Inserted ticket {row.id} for user {row.created_by}")
            return _to_ticket(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create draft ticket: {e}", exc_info=True)
            raise PersistenceError("Failed to create draft ticket") from e
        finally:
            db.close()

    def find_by_id(self, ticket_id: int) -> Optional[Ticket]:
        db = self.session_factory()
        try:
            row = db.query(TicketRow).filter(TicketRow.id == ticket_id).first()
            return _to_ticket(row) if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to find ticket {ticket_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find ticket with id {ticket_id}") from e
        finally:
            db.close()

    def find_all_for_user(self, user_id: int) -> List[Ticket]:
        db = self.session_factory()
        try:
            rows = db.query(TicketRow).filter(TicketRow.created_by == user_id).order_by(TicketRow.id).all()
            logger.debug(f"Fetched {len(rows)} tickets for user {user_id}")
            return [_to_ticket(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list tickets for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list tickets for user {user_id}") from e
        finally:
            db.close()

    def save(self, ticket: Ticket) -> Ticket:
        db = self.session_factory()
        try:
            row = db.query(TicketRow).filter(TicketRow.id == ticket.id).first()
            if row is None:
                raise NotFoundError(f"Ticket not found: {ticket.id}")

            row.status = ticket.status.value
            row.priority = ticket.priority.value
            row.updated_at = ticket.updated_at
            row.assignee = ticket.assignee
            row.summary = ticket.summary
            row.details = ticket.details
            db.commit()
            db.refresh(row)
            logger.debug(f"Updated ticket {ticket.id}")
            return _to_ticket(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save ticket {ticket.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save ticket {ticket.id}") from e
        finally:
            db.close()
