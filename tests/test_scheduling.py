"""
Unit Tests for scheduling

Tests the weekday standup trigger and the one-shot rollup jobs.
"""

import threading

import pytest
import schedule
from unittest.mock import Mock

from standup_bot.config import BotConfig
from standup_bot.scheduling import SchedulingManager


@pytest.fixture
def config():
    return BotConfig(environ={"STANDUP_TIME": "09:15", "SCHEDULER_POLL_SECONDS": "1"})


@pytest.fixture
def publisher():
    return Mock()


@pytest.fixture
def manager(config, context, publisher, store, clock):
    return SchedulingManager(config, context, publisher, store, scheduler=schedule.Scheduler(), now=clock)


class TestStandupTrigger:
    """Test class for the standup schedule."""

    def test_weekdays_by_default(self, manager):
        manager.setup_schedules(Mock())

        jobs = manager.scheduler.get_jobs("standup")
        assert sorted(job.start_day for job in jobs) == sorted(
            ["monday", "tuesday", "wednesday", "thursday", "friday"]
        )
        assert all(str(job.at_time) == "09:15:00" for job in jobs)

    def test_daily(self, context, publisher, store):
        config = BotConfig(environ={"STANDUP_DAYS": "daily"})
        manager = SchedulingManager(config, context, publisher, store, scheduler=schedule.Scheduler())
        manager.setup_schedules(Mock())

        jobs = manager.scheduler.get_jobs("standup")
        assert len(jobs) == 1
        assert jobs[0].unit == "days"

    def test_job_errors_do_not_escape(self, manager):
        run = Mock(side_effect=RuntimeError("boom"))
        manager.setup_schedules(run)

        manager.scheduler.run_all()
        for worker in manager._workers:
            worker.join(timeout=5)
        assert run.call_count == 5

    def test_slow_standup_does_not_hold_up_rollups(self, manager, store, publisher, clock):
        release = threading.Event()
        started = threading.Event()

        def slow_standup():
            started.set()
            release.wait(timeout=5)

        session = store.get_or_create_session("2026-10-19")
        manager.arm_rollup(session)
        manager.setup_schedules(slow_standup)
        clock.advance(minutes=30)

        manager.scheduler.run_all()
        assert started.wait(timeout=5)
        publisher.publish_rollup.assert_called_once_with(session.id)

        release.set()
        for worker in manager._workers:
            worker.join(timeout=5)
        assert not any(worker.is_alive() for worker in manager._workers)


class TestRollup:
    """Test class for rollup jobs."""

    def test_fires_after_deadline_only_once(self, manager, store, publisher, clock):
        session = store.get_or_create_session("2026-10-19")
        assert manager.arm_rollup(session) is True

        clock.advance(minutes=29)
        manager.scheduler.run_all()
        publisher.publish_rollup.assert_not_called()

        clock.advance(minutes=1)
        manager.scheduler.run_all()
        publisher.publish_rollup.assert_called_once_with(session.id)
        assert manager.scheduler.get_jobs("rollup") == []
        assert manager.is_armed(session.id) is False

    def test_rollup_checked_every_second(self, manager, store):
        session = store.get_or_create_session("2026-10-19")
        manager.arm_rollup(session)

        job, = manager.scheduler.get_jobs("rollup")
        assert job.interval == 1
        assert job.unit == "seconds"

    def test_deadline_counts_from_session_creation(self, manager, store, clock):
        session = store.get_or_create_session("2026-10-19")
        clock.advance(minutes=10)

        assert (manager.rollup_deadline(session) - session.created_at).total_seconds() == 30 * 60

    def test_arming_twice_is_noop(self, manager, store):
        session = store.get_or_create_session("2026-10-19")

        assert manager.arm_rollup(session) is True
        assert manager.arm_rollup(session) is False
        assert len(manager.scheduler.get_jobs(str(session.id))) == 1

    def test_recover_pending_rollups(self, manager, store):
        done = store.get_or_create_session("2026-10-19")
        store.claim_rollup(done.id)
        open_session = store.get_or_create_session("2026-10-20")

        assert manager.recover_pending_rollups() == 1
        assert manager.is_armed(open_session.id)
        assert not manager.is_armed(done.id)

    def test_publish_error_still_cancels_job(self, manager, store, publisher, clock):
        publisher.publish_rollup.side_effect = RuntimeError("unexpected")
        session = store.get_or_create_session("2026-10-19")
        manager.arm_rollup(session)

        clock.advance(minutes=31)
        manager.scheduler.run_all()

        assert manager.scheduler.get_jobs("rollup") == []
