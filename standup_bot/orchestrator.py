import time
from datetime import date

from .utils import DuplicateRecordError, StoreWriteError, error_handler, logger


class StandupOrchestrator:
    """Starts the day's standup: session, one record per member, first questions, rollup timer."""

    def __init__(self, context, store, directory, engine, scheduling, sleep=time.sleep, today=date.today):
        self.context = context
        self.store = store
        self.directory = directory
        self.engine = engine
        self.scheduling = scheduling
        self.sleep = sleep
        self.today = today

    def run_daily_standup(self):
        """Scheduled entry point. Safe to call more than once a day."""
        standup_date = self.today().isoformat()
        logger.info(f"--- Starting daily standup for {standup_date} ---")

        try:
            session = self.store.get_or_create_session(standup_date)
        except StoreWriteError as e:
            error_handler.handle_store_error(e, 'run_daily_standup')
            return None

        participants = self.directory.participants
        logger.info(f"Found {len(participants)} valid members for standup.")

        prompted = 0
        for participant in participants:
            try:
                self.store.create_response_record(session.id, participant, list(self.context.questions))
            except DuplicateRecordError:
                logger.info(f"{participant.display_name} was already prompted for {standup_date}. Skipping.")
                continue
            except StoreWriteError as e:
                error_handler.handle_store_error(e, 'create_response_record', participant.id)
                continue

            # One member at a time; Slack rate limits chat.postMessage bursts.
            if prompted and self.context.pacing_delay_seconds:
                self.sleep(self.context.pacing_delay_seconds)

            try:
                self.engine.ask_next(participant.id)
            except Exception as e:
                error_handler.handle_unexpected_error(e, 'ask_next', participant.id)
            prompted += 1

        logger.info(f"Prompted {prompted} members for {standup_date}")
        self.scheduling.arm_rollup(session)
        return session
