from sqlalchemy import BigInteger, Column, Text
from sqlalchemy.types import TIMESTAMP

from deskbot.database import Base
from deskbot.models.user import BigId


class TicketRow(Base):
    __tablename__ = "tickets"

    id = Column(BigId, primary_key=True, autoincrement=True)
    status = Column(Text, nullable=False)  # OPEN, IN_PROGRESS, CLOSED
    priority = Column(Text, nullable=False)  # LOW, MEDIUM, HIGH, URGENT
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_by = Column(BigInteger, nullable=False, index=True)
    assignee = Column(BigInteger)
    summary = Column(Text, nullable=False, default="")
    details = Column(Text, nullable=False, default="")
