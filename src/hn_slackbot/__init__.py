"""Slack bot that relays conversations to a chat model and posts Hacker News summaries."""

from .agent import AgentRunner, ModelInvocationError, prepare_messages
from .chat import ChatRuntime, message_from_event
from .config import Settings, get_settings, reload_settings
from .hn_client import HackerNewsClient, HNAPIError, HNNotFoundError, HNRateLimitError
from .models import ChatMessage, CleanedComment, Comment, Story, StoryWithComments
from .slack_client import SlackClient, SlackError
from .summary import (
    DirectSummaryStrategy,
    HNSummaryPipeline,
    PromptSummaryStrategy,
    SummaryError,
)
from .text import clean_and_limit_text

__version__ = "0.1.0"
__all__ = [
    # Pipeline
    "HNSummaryPipeline",
    "PromptSummaryStrategy",
    "DirectSummaryStrategy",
    "SummaryError",

    # Models
    "Story",
    "Comment",
    "CleanedComment",
    "StoryWithComments",
    "ChatMessage",

    # Configuration
    "Settings",
    "get_settings",
    "reload_settings",

    # Service clients
    "HackerNewsClient",
    "HNAPIError",
    "HNNotFoundError",
    "HNRateLimitError",
    "SlackClient",
    "SlackError",

    # Conversations
    "ChatRuntime",
    "message_from_event",
    "AgentRunner",
    "ModelInvocationError",
    "prepare_messages",

    "clean_and_limit_text",
]
