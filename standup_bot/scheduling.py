import threading
from datetime import datetime, timedelta

import schedule

from .utils import StoreWriteError, error_handler, logger


class SchedulingManager:
    """Manages the daily standup trigger and the delayed rollup for each session."""

    def __init__(self, config, context, publisher, store, scheduler=None, now=datetime.now):
        self.config = config
        self.context = context
        self.publisher = publisher
        self.store = store
        self.scheduler = scheduler or schedule.Scheduler()
        self.now = now
        self._armed = set()
        self._armed_lock = threading.Lock()
        self._workers = []

    def setup_schedules(self, run_daily_standup):
        """Register the standup trigger on every configured day."""
        for day in self.config.STANDUP_DAYS:
            if day == "daily":
                job = self.scheduler.every().day
            else:
                job = getattr(self.scheduler.every(), day)
            job.at(self.config.STANDUP_TIME).do(self._run_in_background, run_daily_standup).tag("standup")

        logger.info(f"📅 Daily standup scheduled at {self.config.STANDUP_TIME} on {', '.join(self.config.STANDUP_DAYS)}")

    def _run_in_background(self, func):
        """Run a long job (the paced fan-out) off the scheduler thread so rollups keep firing."""
        worker = threading.Thread(target=self._run_safely, args=(func,), daemon=True)
        self._workers = [w for w in self._workers if w.is_alive()] + [worker]
        worker.start()
        return worker

    def _run_safely(self, func, *args):
        try:
            func(*args)
        except Exception as e:
            error_handler.handle_unexpected_error(e, f"scheduled job {getattr(func, '__name__', func)}")

    def rollup_deadline(self, session) -> datetime:
        return session.created_at + timedelta(minutes=self.context.rollup_delay_minutes)

    def arm_rollup(self, session) -> bool:
        """Schedule the rollup for a session. Arming an already armed session does nothing."""
        key = str(session.id)
        with self._armed_lock:
            if key in self._armed:
                return False
            self._armed.add(key)

        deadline = self.rollup_deadline(session)
        self.scheduler.every(1).seconds.do(
            self._fire_rollup_if_due, session.id, deadline
        ).tag("rollup", key)
        logger.info(f"Final standup summary for {session.date} scheduled for: {deadline.strftime('%H:%M:%S')}")
        return True

    def is_armed(self, session_id) -> bool:
        with self._armed_lock:
            return str(session_id) in self._armed

    def _fire_rollup_if_due(self, session_id, deadline):
        if self.now() < deadline:
            return None

        try:
            self.publisher.publish_rollup(session_id)
        except Exception as e:
            error_handler.handle_unexpected_error(e, 'publish_rollup', session_id=str(session_id))

        with self._armed_lock:
            self._armed.discard(str(session_id))
        return schedule.CancelJob

    def recover_pending_rollups(self):
        """Re-arm rollups for sessions that never published one, e.g. after a restart."""
        try:
            sessions = self.store.list_unpublished_sessions()
        except StoreWriteError as e:
            error_handler.handle_store_error(e, 'recover_pending_rollups')
            return 0

        armed = sum(1 for session in sessions if self.arm_rollup(session))
        if armed:
            logger.info(f"🔄 Re-armed {armed} pending standup rollups")
        return armed

    def run_scheduler(self, stop_event: threading.Event):
        """Run the scheduler loop until stop_event is set."""
        logger.info("🔄 Scheduler loop started")
        while not stop_event.is_set():
            self.scheduler.run_pending()
            stop_event.wait(self.config.SCHEDULER_POLL_SECONDS)

    def start(self, stop_event: threading.Event) -> threading.Thread:
        scheduler_thread = threading.Thread(target=self.run_scheduler, args=(stop_event,), daemon=True)
        scheduler_thread.start()
        return scheduler_thread
