import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock

import mongomock

from standup_bot.config import StandupContext
from standup_bot.models import Participant
from standup_bot.session_store import SessionStore


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 10, 19, 9, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Session store backed by an in-memory MongoDB."""
    return SessionStore(client=mongomock.MongoClient(), db_name="standup_test", now=clock)


@pytest.fixture
def mock_transport():
    """Mock Slack transport for testing."""
    transport = Mock()
    transport.send_direct = Mock(return_value="1700000000.000100")
    transport.send_to_channel = Mock(return_value="1700000000.000200")
    return transport


@pytest.fixture
def context():
    return StandupContext(
        channel_id="C123456",
        channel_name="standup",
        bot_user_id="UBOT",
        bot_name="standupbot",
        questions=("Q1", "Q2", "Q3"),
        rollup_delay_minutes=30,
        pacing_delay_seconds=5,
    )


@pytest.fixture
def alice():
    return Participant(id="U0ALICE", display_name="alice")


@pytest.fixture
def bob():
    return Participant(id="U0BOB", display_name="bob")
