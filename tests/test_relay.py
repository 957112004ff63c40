from unittest.mock import Mock

import pytest

from deskbot.handlers.menu import MenuCommandHandler
from deskbot.handlers.relay import ConversationalRelayModule
from deskbot.services.commands import CommandRegistry
from deskbot.services.conversation_context import ConversationContextCache
from deskbot.services.errors import TransportError
from deskbot.services.history_store import InMemoryMessageLogRepository, LoggedMessage
from deskbot.services.llm.base import ChatCompletionClient

from tests.factories import make_update, sent_texts


@pytest.fixture
def message_log():
    return InMemoryMessageLogRepository()


@pytest.fixture
def completion():
    mock = Mock(spec=ChatCompletionClient)
    mock.complete.return_value = "Try turning it off and on again."
    return mock


@pytest.fixture
def relay(message_log, completion, telegram):
    return ConversationalRelayModule(ConversationContextCache(message_log), completion, message_log, telegram)


class TestConversationalRelay:
    def test_claims_everything(self, relay):
        assert relay.can_handle(make_update("anything"), 1)
        assert relay.can_handle(make_update(None), 1)

    def test_relays_and_records(self, relay, completion, message_log, telegram):
        relay.handle(make_update("my laptop is slow", thread_id=3), 1)

        telegram.send_chat_action.assert_called_once_with(100, "typing", message_thread_id=3)
        sent = completion.complete.call_args.args[0]
        assert [(m.role, m.content) for m in sent] == [("user", "my laptop is slow")]
        telegram.send_message.assert_called_once_with(100, "Try turning it off and on again.", message_thread_id=3)
        assert message_log.find_recent(100, 1, 5) == [
            LoggedMessage(
                user_id=1,
                chat_id=100,
                request_text="my laptop is slow",
                reply_text="Try turning it off and on again.",
            )
        ]

    def test_follow_up_includes_previous_exchange(self, relay, completion):
        relay.handle(make_update("first"), 1)
        completion.complete.return_value = "second answer"
        relay.handle(make_update("second", update_id=2), 1)

        sent = completion.complete.call_args.args[0]
        assert [m.content for m in sent] == ["first", "Try turning it off and on again.", "second"]

    def test_model_failure_is_reported(self, relay, completion, message_log, telegram):
        completion.complete.side_effect = TransportError("OpenAI API error: 503")

        relay.handle(make_update("hello"), 1)

        assert sent_texts(telegram) == ["[Error] Failed to process message: OpenAI API error: 503"]
        assert message_log.find_recent(100, 1, 5) == []

    def test_non_text_update_is_ignored(self, relay, completion, telegram):
        relay.handle(make_update(None), 1)
        completion.complete.assert_not_called()
        telegram.send_message.assert_not_called()


class TestMenuCommand:
    def test_lists_other_commands(self, telegram):
        menu = MenuCommandHandler(telegram)
        other = Mock()
        other.name = "/ticket"
        other.description = "Manage support tickets."
        menu.registry = CommandRegistry([menu, other])

        menu.handle(make_update("/menu"), 1)

        assert sent_texts(telegram) == ["Available commands:\n/ticket - Manage support tickets."]

    def test_without_registry(self, telegram):
        MenuCommandHandler(telegram).handle(make_update("/menu"), 1)
        assert sent_texts(telegram) == ["Available commands:"]
