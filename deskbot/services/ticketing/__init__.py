from deskbot.services.ticketing.domain import Step, Ticket, TicketDraft, TicketPriority, TicketStatus
from deskbot.services.ticketing.formatter import TicketMessageFormatter
from deskbot.services.ticketing.repository import (
    InMemoryTicketRepository,
    SqlTicketRepository,
    TicketRepository,
)
from deskbot.services.ticketing.session_store import (
    InMemoryTicketSessionManager,
    SqlTicketSessionManager,
    TicketSessionManager,
)
from deskbot.services.ticketing.workflow import TicketService

__all__ = [
    "Step",
    "Ticket",
    "TicketDraft",
    "TicketPriority",
    "TicketStatus",
    "TicketMessageFormatter",
    "TicketRepository",
    "InMemoryTicketRepository",
    "SqlTicketRepository",
    "TicketSessionManager",
    "InMemoryTicketSessionManager",
    "SqlTicketSessionManager",
    "TicketService",
]
