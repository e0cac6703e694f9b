"""
Unit Tests for summary publishing

Tests the individual completion summary and the end-of-window rollup.
"""

import pytest

from standup_bot.models import Participant, ResponseRecord, ResponseStatus
from standup_bot.summary_publisher import ANSWER_COLORS, DEFAULT_COLOR, SummaryPublisher, color_for
from standup_bot.utils import TransportSendError


@pytest.fixture
def publisher(store, mock_transport, context):
    return SummaryPublisher(store, mock_transport, context)


def make_record(questions, answers, status=ResponseStatus.ANSWERED):
    return ResponseRecord(
        id="r1",
        session_id="s1",
        participant_id="U0ALICE",
        display_name="alice",
        questions=tuple(questions),
        answers=tuple(answers),
        status=status,
    )


class TestIndividualSummary:
    """Test class for per-participant summaries."""

    def test_colors(self):
        assert len(set(ANSWER_COLORS)) >= 3
        assert [color_for(i) for i in range(5)] == list(ANSWER_COLORS[:3]) + [DEFAULT_COLOR] * 2

    def test_attachments_pair_questions_and_answers(self, publisher):
        record = make_record(["Q1", "Q2", "Q3", "Q4"], ["A1", "A2\nmore", "A3", "A4"])

        attachments = publisher.build_attachments(record)

        assert [(a['title'], a['text']) for a in attachments] == [
            ("Q1", "A1"), ("Q2", "A2\nmore"), ("Q3", "A3"), ("Q4", "A4")
        ]
        assert [a['color'] for a in attachments] == [*ANSWER_COLORS[:3], DEFAULT_COLOR]

    def test_publish_individual(self, publisher, mock_transport, context):
        record = make_record(["Q1", "Q2"], ["A1", "A2"])

        assert publisher.publish_individual(record) is True

        mock_transport.send_to_channel.assert_called_once()
        channel, text = mock_transport.send_to_channel.call_args.args
        assert channel == context.channel_id
        assert "@alice has completed" in text
        assert len(mock_transport.send_to_channel.call_args.kwargs['attachments']) == 2

    def test_publish_failure_returns_false(self, publisher, mock_transport):
        mock_transport.send_to_channel.side_effect = TransportSendError("not_in_channel")

        assert publisher.publish_individual(make_record(["Q1"], ["A1"])) is False


class TestRollup:
    """Test class for the rollup of skippers and non-responders."""

    def _session_with(self, store, statuses):
        session = store.get_or_create_session("2026-10-19")
        for i, status in enumerate(statuses):
            participant = Participant(id=f"U{i}", display_name=f"user{i}")
            record = store.create_response_record(session.id, participant, ["Q1"])
            if status is ResponseStatus.ANSWERED:
                store.append_answer(record.id, "A1")
            if status is not ResponseStatus.PENDING:
                store.set_status(record.id, status)
        return session

    def test_render(self, publisher):
        records = [
            make_record(["Q1"], [], ResponseStatus.SKIPPED),
            make_record(["Q1"], [], ResponseStatus.PENDING),
        ]

        text = publisher.render_rollup(records, "2026-10-19")

        assert text.splitlines()[0] == "*Daily Standup Summary for 2026-10-19*"
        assert "@alice: Skipped the standup." in text
        assert "@alice: Did not respond." in text

    def test_lists_pending_and_skipped_only(self, publisher, store, mock_transport):
        session = self._session_with(store, [ResponseStatus.ANSWERED, ResponseStatus.SKIPPED, ResponseStatus.PENDING])

        assert publisher.publish_rollup(session.id) is True

        text = mock_transport.send_to_channel.call_args.args[1]
        assert "user0" not in text
        assert "@user1: Skipped the standup." in text
        assert "@user2: Did not respond." in text
        assert text.count("@user2") == 1

    def test_nothing_posted_when_everyone_answered(self, publisher, store, mock_transport):
        session = self._session_with(store, [ResponseStatus.ANSWERED, ResponseStatus.ANSWERED])

        assert publisher.publish_rollup(session.id) is False
        mock_transport.send_to_channel.assert_not_called()

    def test_rollup_posts_once(self, publisher, store, mock_transport):
        session = self._session_with(store, [ResponseStatus.PENDING])

        assert publisher.publish_rollup(session.id) is True
        assert publisher.publish_rollup(session.id) is False
        assert mock_transport.send_to_channel.call_count == 1

    def test_late_answer_does_not_amend_rollup(self, publisher, store, mock_transport):
        session = self._session_with(store, [ResponseStatus.PENDING])
        publisher.publish_rollup(session.id)

        record = store.list_records(session.id)[0]
        store.append_answer(record.id, "A1")
        store.set_status(record.id, ResponseStatus.ANSWERED)

        assert publisher.publish_rollup(session.id) is False
        assert mock_transport.send_to_channel.call_count == 1
