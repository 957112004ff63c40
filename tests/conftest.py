import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from deskbot import models  # noqa: E402,F401
from deskbot.database import Base  # noqa: E402
from deskbot.services.telegram_service import TelegramService  # noqa: E402


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def telegram():
    """Telegram transport mock that records outgoing calls."""
    mock = Mock(spec=TelegramService)
    mock.send_message.return_value = {"ok": True}
    mock.send_chat_action.return_value = {"ok": True}
    return mock
