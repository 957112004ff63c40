from datetime import datetime, timezone
from typing import List, Optional

from deskbot.logging_config import get_logger
from deskbot.services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from deskbot.services.locks import KeyedLocks
from deskbot.services.ticketing.domain import Step, Ticket, TicketPriority, TicketStatus
from deskbot.services.ticketing.repository import TicketRepository
from deskbot.services.ticketing.session_store import TicketSessionManager

logger = get_logger("ticket_workflow")


def sanitize_input(value: Optional[str]) -> str:
    """Trim user input. Raises ValidationError if nothing is left."""
    if value is None or not value.strip():
        raise ValidationError("Input cannot be empty")
    return value.strip()


def append_resolution(details: str, resolution_note: Optional[str]) -> str:
    """Append a resolution line to ticket details. Blank notes leave details unchanged."""
    if resolution_note is None or not resolution_note.strip():
        return details
    note = resolution_note.strip()
    if not details:
        return f"Resolution: {note}"
    return f"{details}\nResolution: {note}"


class TicketService:
    """
    Ticket lifecycle: multi-step creation through a draft session, then lookup and closing.

    Draft steps advance SUMMARY -> PRIORITY -> DETAILS. Supplying DETAILS completes the draft
    and closes the session; the ticket itself stays OPEN.
    """

    def __init__(self, repository: TicketRepository, sessions: TicketSessionManager):
        self.repository = repository
        self.sessions = sessions
        self._locks = KeyedLocks()
        self._ticket_locks = KeyedLocks()

    def start_ticket_creation(self, chat_id: int, user_id: int) -> Ticket:
        with self._locks.get((chat_id, user_id)):
            if self.sessions.get_draft(chat_id, user_id) is not None:
                raise ConflictError("Ticket creation already in progress")

            now = datetime.now(timezone.utc)
            ticket = self.repository.create_draft(
                Ticket(
                    status=TicketStatus.OPEN,
                    priority=TicketPriority.MEDIUM,
                    created_at=now,
                    updated_at=now,
                    created_by=user_id,
                )
            )

            self.sessions.open_session(chat_id, user_id)
            draft = self.sessions.get_draft(chat_id, user_id)
            draft.ticket_id = ticket.id
            self.sessions.update_draft(chat_id, user_id, draft)

            logger.info(f"User {user_id} started ticket {ticket.id} in chat {chat_id}")
            return ticket

    def get_active_step(self, chat_id: int, user_id: int) -> Optional[Step]:
        draft = self.sessions.get_draft(chat_id, user_id)
        if draft is None:
            return None
        return draft.next_step()

    def collect_ticket_field(self, chat_id: int, user_id: int, raw_text: str) -> Ticket:
        with self._locks.get((chat_id, user_id)):
            draft = self.sessions.get_draft(chat_id, user_id)
            if draft is None:
                raise NotFoundError("No active ticket session")
            if draft.ticket_id is None:
                raise NotFoundError("Draft missing ticket reference")

            # Lock order: session key, then ticket id.
            with self._ticket_locks.get(draft.ticket_id):
                ticket = self.repository.find_by_id(draft.ticket_id)
                if ticket is None:
                    raise NotFoundError("Ticket not found")

                step = draft.next_step()
                if step is None:
                    raise ConflictError("Ticket draft already complete")

                value = sanitize_input(raw_text)
                now = datetime.now(timezone.utc)

                if step == Step.SUMMARY:
                    draft.put(Step.SUMMARY, value)
                    updated = ticket.with_changes(summary=value, updated_at=now)
                elif step == Step.PRIORITY:
                    priority = TicketPriority.parse(value)
                    draft.put(Step.PRIORITY, priority.value)
                    updated = ticket.with_changes(priority=priority, updated_at=now)
                else:
                    draft.put(Step.DETAILS, value)
                    updated = ticket.with_changes(details=value, updated_at=now)

                saved = self.repository.save(updated)

            if draft.is_complete():
                self.sessions.close_session(chat_id, user_id)
                logger.info(f"Ticket {saved.id} draft complete for chat {chat_id}, user {user_id}")
            else:
                self.sessions.update_draft(chat_id, user_id, draft)

            logger.debug(f"Collected {step.value} for ticket {saved.id}")
            return saved

    def get_ticket(self, ticket_id: int, user_id: int) -> Optional[Ticket]:
        ticket = self.repository.find_by_id(ticket_id)
        if ticket is None or not ticket.is_visible_to(user_id):
            return None
        return ticket

    def list_tickets_for_user(self, user_id: int) -> List[Ticket]:
        return self.repository.find_all_for_user(user_id)

    def close_ticket(self, ticket_id: int, user_id: int, resolution_note: str) -> Ticket:
        # No guard for already closed tickets: closing again appends another resolution line.
        with self._ticket_locks.get(ticket_id):
            ticket = self.repository.find_by_id(ticket_id)
            if ticket is None:
                raise NotFoundError("Ticket not found")
            if not ticket.is_visible_to(user_id):
                raise AuthorizationError("User cannot close this ticket")

            closed = ticket.with_changes(
                status=TicketStatus.CLOSED,
                details=append_resolution(ticket.details, resolution_note),
                updated_at=datetime.now(timezone.utc),
            )
            saved = self.repository.save(closed)
        logger.info(f"User {user_id} closed ticket {ticket_id}")
        return saved

    def has_active_draft(self, chat_id: int, user_id: int) -> bool:
        return self.sessions.get_draft(chat_id, user_id) is not None
