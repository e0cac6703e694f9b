import threading

from .api import create_app
from .config import StandupContext
from .conversation import ConversationEngine
from .orchestrator import StandupOrchestrator
from .participant_directory import ParticipantDirectory
from .scheduling import SchedulingManager
from .session_store import SessionStore
from .slack_transport import SlackTransport
from .summary_publisher import SummaryPublisher
from .utils import ChannelResolutionError, logger


class DailyStandupBot:
    """Main bot class: wires Slack, MongoDB and the scheduler around the standup conversation."""

    def __init__(self, config, transport=None, store=None):
        self.config = config
        self.transport = transport or SlackTransport(config.SLACK_BOT_TOKEN, config.SLACK_APP_TOKEN)
        self.store = store or SessionStore(uri=config.MONGODB_URI, db_name=config.MONGODB_DB_NAME)
        self.stop_event = threading.Event()

        # Set in connect()
        self.context = None
        self.directory = None
        self.publisher = None
        self.engine = None
        self.scheduling = None
        self.orchestrator = None

    def connect(self):
        """Authenticate, resolve the summary channel and members, and build the components."""
        bot_user_id, bot_name = self.transport.authenticate()

        channel_id = self.transport.resolve_channel(self.config.SUMMARY_CHANNEL_NAME)
        if not channel_id:
            raise ChannelResolutionError(f"Could not find a channel named {self.config.SUMMARY_CHANNEL_NAME!r}")

        self.context = StandupContext(
            channel_id=channel_id,
            channel_name=self.config.SUMMARY_CHANNEL_NAME,
            bot_user_id=bot_user_id,
            bot_name=bot_name,
            questions=tuple(self.config.QUESTIONS),
            rollup_delay_minutes=self.config.SUMMARY_TIMEOUT_MINUTES,
            pacing_delay_seconds=self.config.PACING_DELAY_SECONDS,
        )

        self.directory = ParticipantDirectory(self.transport, bot_user_id, bot_name)
        self.directory.resolve(self.config.STANDUP_USERS)

        self.publisher = SummaryPublisher(self.store, self.transport, self.context)
        self.engine = ConversationEngine(self.store, self.transport, self.publisher)
        self.scheduling = SchedulingManager(self.config, self.context, self.publisher, self.store)
        self.orchestrator = StandupOrchestrator(
            self.context, self.store, self.directory, self.engine, self.scheduling
        )

        self.transport.subscribe(self.handle_direct_message)
        logger.info(f"✅ Connected. Summaries go to #{self.context.channel_name} ({channel_id})")
        return self.context

    def handle_direct_message(self, user_id: str, text: str, is_edit: bool = False):
        """Inbound DM callback. Edits and the bot's own messages are not standup answers."""
        if is_edit or user_id == self.context.bot_user_id:
            return None
        logger.info(f"Received message from {user_id} in DM.")
        return self.engine.on_inbound_message(user_id, text)

    def run_daily_standup(self):
        return self.orchestrator.run_daily_standup()

    def _start_api(self):
        app = create_app(self.store, self.context)
        api_thread = threading.Thread(
            target=app.run,
            kwargs={'host': self.config.FLASK_HOST, 'port': self.config.FLASK_PORT, 'debug': False, 'use_reloader': False},
            daemon=True,
        )
        api_thread.start()
        logger.info(f"🌐 Report API listening on {self.config.FLASK_HOST}:{self.config.FLASK_PORT}")
        return api_thread

    def start(self):
        """Start the scheduler, the optional report API and the Socket Mode connection."""
        self.scheduling.setup_schedules(self.run_daily_standup)
        self.scheduling.recover_pending_rollups()
        self.scheduling.start(self.stop_event)

        if self.config.FLASK_ENABLED:
            self._start_api()

        self.transport.start()
        logger.info(f"🤖 Standup bot is running. It will prompt for standup at {self.config.STANDUP_TIME}")

    def run(self):
        """Start everything and block until stop() is called."""
        self.start()
        try:
            self.stop_event.wait()
        finally:
            self.transport.close()

    def stop(self):
        self.stop_event.set()
