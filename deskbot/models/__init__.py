from deskbot.models.message import Message
from deskbot.models.ticket import TicketRow
from deskbot.models.ticket_session import TicketSessionRow
from deskbot.models.user import User

__all__ = [
    "User",
    "Message",
    "TicketRow",
    "TicketSessionRow",
]
