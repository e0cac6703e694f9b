import signal
import sys

from slack_sdk.errors import SlackApiError

from .bot import DailyStandupBot
from .config import BotConfig
from .utils import ChannelResolutionError, StoreWriteError, logger


def main():
    """Load configuration, connect to Slack and MongoDB, and run until interrupted."""
    config = BotConfig()
    try:
        config.validate_config()
    except ValueError as e:
        logger.error(f"❌ ERROR: {e}")
        sys.exit(1)

    logger.configure(config.LOG_LEVEL, config.LOG_DIR)
    logger.info("🤖 Starting Daily Standup Bot in Socket Mode...")

    try:
        bot = DailyStandupBot(config)
        bot.connect()
    except ChannelResolutionError as e:
        logger.error(f"❌ {e}. Exiting.")
        sys.exit(1)
    except SlackApiError as e:
        logger.error(f"❌ Failed to connect and log in: {e.response['error']}")
        sys.exit(1)
    except StoreWriteError as e:
        logger.error(f"❌ {e}. Exiting.")
        sys.exit(1)

    signal.signal(signal.SIGTERM, lambda *_: bot.stop())
    try:
        bot.run()
    except KeyboardInterrupt:
        bot.stop()
        logger.info("👋 Standup bot stopped")


if __name__ == "__main__":
    main()
