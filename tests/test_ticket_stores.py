from datetime import datetime, timezone

import pytest

from deskbot.services.errors import NotFoundError
from deskbot.services.ticketing import (
    InMemoryTicketRepository,
    InMemoryTicketSessionManager,
    SqlTicketRepository,
    SqlTicketSessionManager,
    Step,
    Ticket,
    TicketDraft,
    TicketPriority,
    TicketService,
    TicketStatus,
)


def _new_ticket(created_by=1) -> Ticket:
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return Ticket(
        status=TicketStatus.OPEN,
        priority=TicketPriority.MEDIUM,
        created_at=now,
        updated_at=now,
        created_by=created_by,
    )


@pytest.fixture(params=["memory", "sql"])
def repository(request, session_factory):
    if request.param == "memory":
        return InMemoryTicketRepository()
    return SqlTicketRepository(session_factory)


@pytest.fixture(params=["memory", "sql"])
def sessions(request, session_factory):
    if request.param == "memory":
        return InMemoryTicketSessionManager()
    return SqlTicketSessionManager(session_factory)


class TestTicketRepository:
    def test_create_assigns_id(self, repository):
        created = repository.create_draft(_new_ticket())
        assert created.id is not None
        assert repository.find_by_id(created.id).status == TicketStatus.OPEN

    def test_ids_are_distinct(self, repository):
        first = repository.create_draft(_new_ticket())
        second = repository.create_draft(_new_ticket())
        assert first.id != second.id

    def test_find_missing_returns_none(self, repository):
        assert repository.find_by_id(404) is None

    def test_save_overwrites_fields(self, repository):
        created = repository.create_draft(_new_ticket())
        repository.save(created.with_changes(summary="VPN down", priority=TicketPriority.HIGH))

        stored = repository.find_by_id(created.id)
        assert stored.summary == "VPN down"
        assert stored.priority == TicketPriority.HIGH
        assert stored.id == created.id

    def test_save_unknown_ticket_raises(self, repository):
        with pytest.raises(NotFoundError):
            repository.save(_new_ticket().with_changes(id=404))

    def test_find_all_for_user_filters_and_orders(self, repository):
        a = repository.create_draft(_new_ticket(created_by=1))
        repository.create_draft(_new_ticket(created_by=2))
        b = repository.create_draft(_new_ticket(created_by=1))

        assert [t.id for t in repository.find_all_for_user(1)] == [a.id, b.id]

    def test_timestamps_are_timezone_aware(self, repository):
        created = repository.create_draft(_new_ticket())
        stored = repository.find_by_id(created.id)
        assert stored.created_at.tzinfo is not None
        assert stored.created_at == created.created_at


class TestTicketSessionManager:
    def test_no_draft_before_open(self, sessions):
        assert sessions.get_draft(1, 2) is None

    def test_open_creates_empty_draft(self, sessions):
        sessions.open_session(1, 2)
        draft = sessions.get_draft(1, 2)
        assert draft is not None
        assert draft.ticket_id is None
        assert draft.next_step() == Step.SUMMARY

    def test_update_round_trips_values(self, sessions):
        sessions.open_session(1, 2)
        draft = sessions.get_draft(1, 2)
        draft.ticket_id = 9
        draft.put(Step.SUMMARY, "printer down")
        sessions.update_draft(1, 2, draft)

        stored = sessions.get_draft(1, 2)
        assert stored.ticket_id == 9
        assert stored.get(Step.SUMMARY) == "printer down"
        assert stored.get(Step.PRIORITY) is None

    def test_returned_draft_is_detached(self, sessions):
        sessions.open_session(1, 2)
        sessions.get_draft(1, 2).put(Step.SUMMARY, "not saved")
        assert sessions.get_draft(1, 2).get(Step.SUMMARY) is None

    def test_update_without_open_session_creates_one(self, sessions):
        sessions.update_draft(1, 2, TicketDraft(ticket_id=3))
        assert sessions.get_draft(1, 2).ticket_id == 3

    def test_open_replaces_existing_draft(self, sessions):
        sessions.update_draft(1, 2, TicketDraft(ticket_id=3, values={Step.SUMMARY: "old"}))
        sessions.open_session(1, 2)
        draft = sessions.get_draft(1, 2)
        assert draft.ticket_id is None
        assert draft.get(Step.SUMMARY) is None

    def test_close_removes_draft(self, sessions):
        sessions.open_session(1, 2)
        sessions.close_session(1, 2)
        assert sessions.get_draft(1, 2) is None

    def test_close_without_session_is_noop(self, sessions):
        sessions.close_session(1, 2)
        assert sessions.get_draft(1, 2) is None

    def test_sessions_are_keyed_by_chat_and_user(self, sessions):
        sessions.open_session(1, 2)
        assert sessions.get_draft(1, 3) is None
        assert sessions.get_draft(2, 2) is None


class TestWorkflowOnDatabase:
    def test_creation_scenario_persists_ticket(self, session_factory):
        service = TicketService(SqlTicketRepository(session_factory), SqlTicketSessionManager(session_factory))

        ticket = service.start_ticket_creation(10, 1)
        service.collect_ticket_field(10, 1, "printer down")
        service.collect_ticket_field(10, 1, "urgent")
        service.collect_ticket_field(10, 1, "won't power on")

        stored = service.get_ticket(ticket.id, 1)
        assert stored.summary == "printer down"
        assert stored.priority == TicketPriority.URGENT
        assert stored.details == "won't power on"
        assert not service.has_active_draft(10, 1)
