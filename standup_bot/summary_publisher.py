from typing import List

from .models import ResponseRecord, ResponseStatus
from .utils import StoreWriteError, TransportSendError, error_handler, logger

# Colors for the first answers of a summary; later answers share DEFAULT_COLOR.
ANSWER_COLORS = ('#00BFFF', '#32CD32', '#FFD700')
DEFAULT_COLOR = '#808080'


def color_for(index: int) -> str:
    return ANSWER_COLORS[index] if index < len(ANSWER_COLORS) else DEFAULT_COLOR


class SummaryPublisher:
    """Posts standup results to the summary channel."""

    def __init__(self, store, transport, context):
        self.store = store
        self.transport = transport
        self.context = context

    def build_attachments(self, record: ResponseRecord) -> List[dict]:
        return [
            {
                'color': color_for(i),
                'title': question,
                'text': answer,
                'mrkdwn_in': ['text'],
            }
            for i, (question, answer) in enumerate(zip(record.questions, record.answers))
        ]

    def publish_individual(self, record: ResponseRecord) -> bool:
        """Post one participant's answers. Called once, when the record becomes answered."""
        text = f"--- @{record.display_name} has completed their standup ---"
        try:
            self.transport.send_to_channel(self.context.channel_id, text, attachments=self.build_attachments(record))
        except TransportSendError as e:
            error_handler.handle_transport_error(e, 'publish_individual', record.participant_id)
            return False

        logger.info(f"✅ Individual summary published for {record.display_name}")
        return True

    def publish_skip_notice(self, record: ResponseRecord) -> bool:
        try:
            self.transport.send_to_channel(
                self.context.channel_id, f"@{record.display_name} has skipped their standup."
            )
        except TransportSendError as e:
            error_handler.handle_transport_error(e, 'publish_skip_notice', record.participant_id)
            return False
        return True

    def render_rollup(self, records: List[ResponseRecord], date: str = None) -> str:
        header = f"*Daily Standup Summary for {date}*" if date else "*Daily Standup Summary*"
        lines = [header]
        for record in records:
            if record.status is ResponseStatus.SKIPPED:
                lines.append(f"@{record.display_name}: Skipped the standup.")
            else:
                lines.append(f"@{record.display_name}: Did not respond.")
        return "\n\n".join(lines)

    def publish_rollup(self, session_id) -> bool:
        """
        Post the list of members who skipped or never answered.

        The rollup is claimed in the store first, so each session reports at
        most once no matter how many timers or processes reach this point.
        Statuses are read at claim time; later answers do not amend the post.
        """
        try:
            if not self.store.claim_rollup(session_id):
                logger.info(f"Rollup for session {session_id} was already published")
                return False

            session = self.store.get_session(session_id)
            records = self.store.list_non_terminal(session_id)
        except StoreWriteError as e:
            error_handler.handle_store_error(e, 'publish_rollup', session_id=str(session_id))
            return False

        if not records:
            logger.info("All users responded or skipped individually. No final summary needed.")
            return False

        text = self.render_rollup(records, session.date if session else None)
        try:
            self.transport.send_to_channel(self.context.channel_id, text)
        except TransportSendError as e:
            error_handler.handle_transport_error(e, 'publish_rollup', session_id=str(session_id))
            return False

        logger.info(f"✅ Final standup summary published for session {session_id} ({len(records)} members listed)")
        return True
