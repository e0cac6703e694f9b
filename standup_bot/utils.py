import logging
import os
import traceback
from datetime import datetime
from typing import Optional


class StandupBotError(Exception):
    """Base class for errors raised by the standup bot."""


class IdentityResolutionError(StandupBotError):
    """A configured participant could not be found in the workspace."""


class ChannelResolutionError(StandupBotError):
    """The summary channel could not be found. Nothing can be reported without it."""


class DuplicateRecordError(StandupBotError):
    """A response record already exists for this session and participant."""


class StoreWriteError(StandupBotError):
    """A read or write against the durable store failed."""


class InvalidTransitionError(StandupBotError):
    """A record mutation was refused because the record is closed or already full."""


class TransportSendError(StandupBotError):
    """A Slack call failed."""


class BotLogger:
    """Centralized logging utility for the standup bot."""

    FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    def __init__(self, name='standup_bot', log_level=logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(log_level)
        self._file_handler = None

        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(self.FORMAT))
            self.logger.addHandler(console_handler)

    def configure(self, log_level='INFO', log_dir: Optional[str] = 'logs'):
        """Set the level and, when a directory is given, write errors to a file."""
        self.logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

        if log_dir and self._file_handler is None:
            if not os.path.exists(log_dir):
                os.makedirs(log_dir)

            self._file_handler = logging.FileHandler(os.path.join(log_dir, 'bot_errors.log'))
            self._file_handler.setLevel(logging.ERROR)
            self._file_handler.setFormatter(logging.Formatter(self.FORMAT))
            self.logger.addHandler(self._file_handler)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, error: Optional[Exception] = None, **kwargs):
        """Log error message with optional exception details."""
        if error:
            kwargs.update({
                'error_type': type(error).__name__,
                'error_message': str(error),
                'error_traceback': traceback.format_exc(),
            })

        self.logger.error(message, extra=kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(message, extra=kwargs)


class ErrorHandler:
    """Centralized error handling for the bot."""

    def __init__(self, logger: BotLogger):
        self.logger = logger

    def _report(self, error_type: str, error: Exception, context: str, user_id: str = None, **kwargs):
        error_data = {
            'error_kind': error_type,
            'context': context,
            'user_id': user_id,
            'timestamp': datetime.now().isoformat(),
            **kwargs
        }
        self.logger.error(f"{error_type} in {context}: {error}", error, **error_data)

        return {
            'success': False,
            'error': str(error),
            'error_type': error_type
        }

    def handle_transport_error(self, error: Exception, context: str, user_id: str = None, **kwargs):
        """Handle Slack API errors. Failed sends are not retried."""
        return self._report('transport_error', error, context, user_id, **kwargs)

    def handle_store_error(self, error: Exception, context: str, user_id: str = None, **kwargs):
        """Handle MongoDB errors. The participant stays in the last committed state."""
        return self._report('store_error', error, context, user_id, **kwargs)

    def handle_unexpected_error(self, error: Exception, context: str, user_id: str = None, **kwargs):
        """Handle unexpected errors."""
        return self._report('unexpected_error', error, context, user_id, **kwargs)


# Global instances
logger = BotLogger()
error_handler = ErrorHandler(logger)
