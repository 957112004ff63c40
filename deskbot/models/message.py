from sqlalchemy import BigInteger, Column, Text
from sqlalchemy.types import TIMESTAMP

from deskbot.database import Base
from deskbot.models.user import BigId


class Message(Base):
    __tablename__ = "messages"

    id = Column(BigId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    chat_id = Column(BigInteger, nullable=False)
    text = Column(Text, nullable=False)  # what the user sent
    reply = Column(Text, nullable=False)  # what the model answered
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
