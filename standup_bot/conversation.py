"""
Per-participant standup conversation.

A response record is either pending (waiting for the answer to question
``len(answers)``), answered or skipped. Replies are applied one at a time per
participant, in arrival order.
"""

import threading
from collections import defaultdict

from .models import ResponseStatus
from .utils import InvalidTransitionError, StoreWriteError, TransportSendError, error_handler, logger

SKIP_COMMAND = "skip"

INTRO_TEMPLATE = (
    "Hi {name}! It's time for today's standup. "
    "You can type *'skip'* at any time to skip. Please note that answers *cannot* be edited.\n\n"
    "- {question}"
)
QUESTION_TEMPLATE = "- {question}"
SKIP_ACK = "You have skipped today's standup. Thank you."


def is_skip_command(text: str) -> bool:
    return (text or "").strip().lower() == SKIP_COMMAND


class ConversationEngine:
    """Drives each participant's response record from the first question to a terminal status."""

    def __init__(self, store, transport, publisher):
        self.store = store
        self.transport = transport
        self.publisher = publisher
        self._locks = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, participant_id: str):
        with self._locks_guard:
            return self._locks[participant_id]

    def ask_next(self, participant_id: str):
        """Send the next unanswered question, or close the record when none remain."""
        with self._lock_for(participant_id):
            try:
                record = self.store.get_active_pending_record(participant_id)
            except StoreWriteError as e:
                error_handler.handle_store_error(e, 'ask_next', participant_id)
                return None

            if record is None:
                logger.info(f"No pending standup found for user ID: {participant_id}")
                return None

            index = record.next_question_index
            if index < len(record.questions):
                question = record.questions[index]
                if index == 0:
                    text = INTRO_TEMPLATE.format(name=record.display_name, question=question)
                else:
                    text = QUESTION_TEMPLATE.format(question=question)

                try:
                    self.transport.send_direct(participant_id, text)
                except TransportSendError as e:
                    error_handler.handle_transport_error(e, 'ask_next', participant_id, question_index=index)
                return record

            return self._complete(record)

    def _complete(self, record):
        try:
            transitioned = self.store.set_status(record.id, ResponseStatus.ANSWERED)
        except (StoreWriteError, InvalidTransitionError) as e:
            error_handler.handle_store_error(e, 'complete', record.participant_id)
            return None

        if not transitioned:
            logger.info(f"Record {record.id} was already closed; not publishing again")
            return None

        logger.info(f"✅ {record.display_name} completed their standup")
        self.publisher.publish_individual(record)
        return record

    def on_inbound_message(self, participant_id: str, raw_text: str):
        """Apply a direct message as a skip command or as the answer to the current question."""
        with self._lock_for(participant_id):
            try:
                record = self.store.get_active_pending_record(participant_id)
            except StoreWriteError as e:
                error_handler.handle_store_error(e, 'on_inbound_message', participant_id)
                return None

            if record is None:
                logger.debug(f"Ignoring message from {participant_id}: no standup in progress")
                return None

            if record.is_complete:
                # Every answer is stored but closing the record failed earlier; retry it.
                return self.ask_next(participant_id)

            if is_skip_command(raw_text):
                return self._skip(record)

            try:
                updated = self.store.append_answer(record.id, raw_text)
            except (StoreWriteError, InvalidTransitionError) as e:
                error_handler.handle_store_error(e, 'append_answer', participant_id)
                return None

            logger.info(f"@{record.display_name} answered question {len(updated.answers)}.")
            self.ask_next(participant_id)
            return updated

    def _skip(self, record):
        try:
            transitioned = self.store.set_status(record.id, ResponseStatus.SKIPPED)
        except StoreWriteError as e:
            error_handler.handle_store_error(e, 'skip', record.participant_id)
            return None

        if not transitioned:
            return None

        logger.info(f"@{record.display_name} skipped the standup.")
        try:
            self.transport.send_direct(record.participant_id, SKIP_ACK)
        except TransportSendError as e:
            error_handler.handle_transport_error(e, 'skip_ack', record.participant_id)
        self.publisher.publish_skip_notice(record)
        return record
