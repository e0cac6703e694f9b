"""
Unit Tests for the daily standup fan-out

Tests session creation, record creation, pacing and rollup arming.
"""

import pytest
from datetime import date
from unittest.mock import Mock, call

from standup_bot.conversation import ConversationEngine
from standup_bot.models import ResponseStatus
from standup_bot.orchestrator import StandupOrchestrator
from standup_bot.utils import StoreWriteError


@pytest.fixture
def directory(alice, bob):
    directory = Mock()
    directory.participants = [alice, bob]
    return directory


@pytest.fixture
def scheduling():
    return Mock()


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def orchestrator(context, store, directory, mock_transport, scheduling, sleep):
    engine = ConversationEngine(store, mock_transport, Mock())
    return StandupOrchestrator(
        context, store, directory, engine, scheduling, sleep=sleep, today=lambda: date(2026, 10, 19)
    )


class TestDailyStandup:
    """Test class for run_daily_standup."""

    def test_prompts_each_member_in_order(self, orchestrator, store, mock_transport, sleep, alice, bob):
        session = orchestrator.run_daily_standup()

        assert session.date == "2026-10-19"
        assert [c.args[0] for c in mock_transport.send_direct.call_args_list] == [alice.id, bob.id]
        sleep.assert_called_once_with(5)

        records = store.list_records(session.id)
        assert [r.participant_id for r in records] == [alice.id, bob.id]
        assert all(r.status is ResponseStatus.PENDING for r in records)
        assert all(r.questions == ("Q1", "Q2", "Q3") for r in records)

    def test_pause_happens_between_sends(self, orchestrator, mock_transport, sleep):
        events = []
        mock_transport.send_direct.side_effect = lambda user_id, text: events.append(("send", user_id))
        sleep.side_effect = lambda seconds: events.append(("sleep", seconds))

        orchestrator.run_daily_standup()

        assert events == [("send", "U0ALICE"), ("sleep", 5), ("send", "U0BOB")]

    def test_arms_rollup_after_fan_out(self, orchestrator, scheduling):
        session = orchestrator.run_daily_standup()

        scheduling.arm_rollup.assert_called_once_with(session)

    def test_second_run_same_day_keeps_answers(self, orchestrator, store, mock_transport, alice):
        first = orchestrator.run_daily_standup()
        record = store.get_active_pending_record(alice.id)
        store.append_answer(record.id, "A1")
        mock_transport.send_direct.reset_mock()

        second = orchestrator.run_daily_standup()

        assert second.id == first.id
        assert len(store.list_records(first.id)) == 2
        assert store.get_record(record.id).answers == ("A1",)
        mock_transport.send_direct.assert_not_called()

    def test_record_failure_does_not_block_others(self, orchestrator, store, mock_transport, bob):
        real_create = store.create_response_record

        def flaky_create(session_id, participant, questions):
            if participant.display_name == "alice":
                raise StoreWriteError("write failed")
            return real_create(session_id, participant, questions)

        store.create_response_record = flaky_create

        orchestrator.run_daily_standup()

        assert mock_transport.send_direct.call_args_list == [call(bob.id, mock_transport.send_direct.call_args.args[1])]

    def test_session_failure_aborts_run(self, orchestrator, store, mock_transport, scheduling):
        store.get_or_create_session = Mock(side_effect=StoreWriteError("down"))

        assert orchestrator.run_daily_standup() is None
        mock_transport.send_direct.assert_not_called()
        scheduling.arm_rollup.assert_not_called()
