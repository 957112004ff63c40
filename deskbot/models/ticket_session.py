from sqlalchemy import BigInteger, Column, Text

from deskbot.database import Base


class TicketSessionRow(Base):
    __tablename__ = "ticket_sessions"

    chat_id = Column(BigInteger, primary_key=True, autoincrement=False)
    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    ticket_id = Column(BigInteger)
    summary = Column(Text)
    priority = Column(Text)
    details = Column(Text)
    confirmation = Column(Text)
