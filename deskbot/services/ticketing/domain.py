from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from deskbot.services.errors import ValidationError


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @classmethod
    def parse(cls, raw: str) -> "TicketPriority":
        """Case-insensitive lookup. Raises ValidationError naming the unknown value."""
        try:
            return cls(raw.strip().upper())
        except (ValueError, AttributeError):
            raise ValidationError(f"Unknown priority: {raw}")


class Step(str, Enum):
    SUMMARY = "SUMMARY"
    PRIORITY = "PRIORITY"
    DETAILS = "DETAILS"
    CONFIRMATION = "CONFIRMATION"


# Steps collected by the workflow, in prompt order. CONFIRMATION is stored but never asked for.
REQUIRED_STEPS = (Step.SUMMARY, Step.PRIORITY, Step.DETAILS)


@dataclass(frozen=True)
class Ticket:
    status: TicketStatus
    priority: TicketPriority
    created_at: datetime
    updated_at: datetime
    created_by: int
    id: Optional[int] = None
    assignee: Optional[int] = None
    summary: str = ""
    details: str = ""

    def with_changes(self, **changes) -> "Ticket":
        return replace(self, **changes)

    def is_visible_to(self, user_id: int) -> bool:
        return self.created_by == user_id or (self.assignee is not None and self.assignee == user_id)


@dataclass
class TicketDraft:
    """Partially collected ticket fields for one chat/user pair."""

    ticket_id: Optional[int] = None
    values: dict[Step, str] = field(default_factory=dict)

    def put(self, step: Step, value: str) -> None:
        if value is None:
            raise ValueError("value must not be None")
        self.values[step] = value

    def get(self, step: Step) -> Optional[str]:
        return self.values.get(step)

    def next_step(self) -> Optional[Step]:
        for step in REQUIRED_STEPS:
            if step not in self.values:
                return step
        return None

    def is_complete(self) -> bool:
        return all(step in self.values for step in REQUIRED_STEPS)

    def copy(self) -> "TicketDraft":
        return TicketDraft(ticket_id=self.ticket_id, values=dict(self.values))
