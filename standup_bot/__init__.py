"""
Slack Standup Bot Package

A Slack bot that runs the daily standup as private question-and-answer
conversations and publishes the results to a shared channel.
"""

__version__ = "1.0.0"

from .bot import DailyStandupBot
from .config import BotConfig, StandupContext

__all__ = ["DailyStandupBot", "BotConfig", "StandupContext"]
