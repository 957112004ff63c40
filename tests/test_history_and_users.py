from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from deskbot.schemas.telegram import TelegramUser
from deskbot.services.errors import PersistenceError
from deskbot.services.history_store import (
    InMemoryMessageLogRepository,
    LoggedMessage,
    NoopMessageLogRepository,
    SqlMessageLogRepository,
)
from deskbot.services.user_service import InMemoryUserService, SqlUserService, UserRecord


@pytest.fixture(params=["memory", "sql"])
def message_log(request, session_factory):
    if request.param == "memory":
        return InMemoryMessageLogRepository()
    return SqlMessageLogRepository(session_factory)


@pytest.fixture(params=["memory", "sql"])
def users(request, session_factory):
    if request.param == "memory":
        return InMemoryUserService()
    return SqlUserService(session_factory)


def _logged(n, chat_id=10, user_id=1) -> LoggedMessage:
    return LoggedMessage(user_id=user_id, chat_id=chat_id, request_text=f"q{n}", reply_text=f"a{n}")


class TestMessageLog:
    def test_find_recent_returns_oldest_first(self, message_log):
        for n in range(5):
            message_log.save(_logged(n))

        recent = message_log.find_recent(10, 1, 3)
        assert [m.request_text for m in recent] == ["q2", "q3", "q4"]
        assert [m.reply_text for m in recent] == ["a2", "a3", "a4"]

    def test_find_recent_filters_by_chat_and_user(self, message_log):
        message_log.save(_logged(1))
        message_log.save(_logged(2, chat_id=11))
        message_log.save(_logged(3, user_id=2))

        assert [m.request_text for m in message_log.find_recent(10, 1, 10)] == ["q1"]

    def test_non_positive_limit_returns_nothing(self, message_log):
        message_log.save(_logged(1))
        assert message_log.find_recent(10, 1, 0) == []

    def test_noop_repository(self):
        repo = NoopMessageLogRepository()
        repo.save(_logged(1))
        assert repo.find_recent(10, 1, 5) == []

    def test_sql_failure_is_wrapped(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("db gone"))
        repo = SqlMessageLogRepository(lambda: session)

        with pytest.raises(PersistenceError):
            repo.find_recent(10, 1, 5)
        session.close.assert_called_once()


class TestUserService:
    def test_ensure_user_creates_once(self, users):
        sender = TelegramUser(id=555, first_name="Alice", last_name="Smith", username="alice")
        first = users.ensure_user(sender)
        second = users.ensure_user(sender)

        assert first.id == second.id
        assert first.telegram_id == 555
        assert first.display_name == "Alice Smith"

    def test_distinct_senders_get_distinct_ids(self, users):
        a = users.ensure_user(TelegramUser(id=1, first_name="A"))
        b = users.ensure_user(TelegramUser(id=2, first_name="B"))
        assert a.id != b.id

    def test_find_by_telegram_id(self, users):
        created = users.ensure_user(TelegramUser(id=555, first_name="Alice"))
        assert users.find_by_telegram_id(555) == created
        assert users.find_by_telegram_id(556) is None

    def test_sql_failure_is_wrapped(self):
        session = Mock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("db gone"))
        service = SqlUserService(lambda: session)

        with pytest.raises(PersistenceError):
            service.ensure_user(TelegramUser(id=1, first_name="A"))
        session.rollback.assert_called_once()


class TestUserRecord:
    def test_display_name_falls_back_to_username(self):
        assert UserRecord(id=1, telegram_id=9, username="bob").display_name == "bob"

    def test_display_name_falls_back_to_telegram_id(self):
        assert UserRecord(id=1, telegram_id=9).display_name == "9"
