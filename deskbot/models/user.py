from sqlalchemy import BigInteger, Column, Integer, Text
from sqlalchemy.types import TIMESTAMP

from deskbot.database import Base

# SQLite only autoincrements INTEGER primary keys.
BigId = BigInteger().with_variant(Integer, "sqlite")


class User(Base):
    __tablename__ = "users"

    id = Column(BigId, primary_key=True, autoincrement=True)
    telegram_id = Column(BigInteger, nullable=False, unique=True)
    username = Column(Text)
    first_name = Column(Text)
    last_name = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
