"""Tools the model can call while answering."""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog
from pydantic import BaseModel, Field, ValidationError

from .hn_client import MAX_TOP_STORIES, HackerNewsClient
from .slack_client import SlackClient

logger = structlog.get_logger(__name__)


@dataclass
class Tool:
    """A named action with a pydantic input schema."""

    name: str
    description: str
    input_model: type[BaseModel]
    execute: Callable[[Any], Awaitable[Any]]

    def to_openai(self) -> dict[str, Any]:
        """OpenAI function-calling declaration for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_model.model_json_schema(),
            },
        }


class Toolset:
    """Collection of tools addressed by name."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.add(tool)

    def add(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def to_openai(self) -> list[dict[str, Any]]:
        return [tool.to_openai() for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: str | None) -> str:
        """Run a tool with JSON ``arguments`` and return its JSON result.

        Unknown tools, invalid arguments and tool failures are reported back
        as an ``error`` object so the model can react to them.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Unknown tool requested", tool=name)
            return json.dumps({"error": f"Unknown tool: {name}"})

        try:
            params = tool.input_model.model_validate_json(arguments or "{}")
        except ValidationError as e:
            logger.warning("Invalid tool arguments", tool=name, error=str(e))
            return json.dumps({"error": f"Invalid arguments: {e}"})

        try:
            result = await tool.execute(params)
        except Exception as e:
            logger.exception("Tool failed", tool=name)
            return json.dumps({"error": str(e)})

        logger.info("Tool executed", tool=name)
        return json.dumps(result, default=str)


# Slack tools


class SendMessageInput(BaseModel):
    channel: str = Field(..., description="The channel ID to send to")
    text: str = Field(..., description="Message text, Slack mrkdwn allowed")
    thread_ts: str | None = Field(
        default=None, description="Thread timestamp to reply in, if any"
    )


class PostToChannelInput(BaseModel):
    channel: str = Field(..., description="The channel ID to post to")
    text: str = Field(..., description="The message text to post")


class ReactionInput(BaseModel):
    channel: str = Field(..., description="Channel of the message")
    timestamp: str = Field(..., description="Timestamp of the message to react to")
    emoji: str = Field(..., description="Emoji name, e.g. thumbsup")


class UserInfoInput(BaseModel):
    user_id: str = Field(..., description="Slack user ID")


class ReportStatusInput(BaseModel):
    channel: str = Field(..., description="Channel ID of the thread")
    thread_ts: str = Field(..., description="Thread timestamp")
    status: str = Field(
        default="",
        description='Status text such as "is analyzing..."; empty clears the status',
    )


class ReadMessagesInput(BaseModel):
    channel: str = Field(..., description="Channel ID to read")
    thread_ts: str | None = Field(default=None, description="Thread to read, if any")
    limit: int = Field(default=20, ge=1, le=100, description="Maximum messages to return")


def create_slack_tools(slack: SlackClient) -> list[Tool]:
    """Slack actions: messaging, reactions, profiles, status and history."""

    async def send_message(params: SendMessageInput):
        ts = await slack.post_message(params.channel, params.text, thread_ts=params.thread_ts)
        return {"ok": True, "ts": ts}

    async def post_to_channel(params: PostToChannelInput):
        await slack.post_message(params.channel, params.text)
        return "Message posted successfully"

    async def react(params: ReactionInput):
        await slack.add_reaction(params.channel, params.timestamp, params.emoji)
        return {"ok": True}

    async def user_info(params: UserInfoInput):
        return await slack.get_user_info(params.user_id)

    async def report_status(params: ReportStatusInput):
        await slack.set_thread_status(params.channel, params.thread_ts, params.status)
        return {"ok": True, "cleared": params.status == ""}

    async def read_messages(params: ReadMessagesInput):
        messages = await slack.read_messages(params.channel, params.thread_ts, params.limit)
        return {"messages": messages}

    return [
        Tool(
            "send_slack_message",
            "Send a message to a Slack channel or reply in a thread",
            SendMessageInput,
            send_message,
        ),
        Tool(
            "post_to_slack_channel",
            "Post a message to a Slack channel",
            PostToChannelInput,
            post_to_channel,
        ),
        Tool("react_to_message", "React to a Slack message with an emoji", ReactionInput, react),
        Tool("get_user_info", "Get a Slack user's profile details", UserInfoInput, user_info),
        Tool(
            "report_status",
            "Set or clear the status shown on a Slack thread",
            ReportStatusInput,
            report_status,
        ),
        Tool(
            "read_messages",
            "Read recent messages from a Slack channel or thread",
            ReadMessagesInput,
            read_messages,
        ),
    ]


# Hacker News tools


class TopStoriesInput(BaseModel):
    limit: int = Field(
        default=10,
        description=f"Number of story IDs to return (default: 10, max: {MAX_TOP_STORIES})",
    )


class StoryInput(BaseModel):
    story_id: int = Field(..., description="The Hacker News story ID")


class CommentsInput(BaseModel):
    comment_ids: list[int] = Field(..., description="Comment IDs to fetch")
    max_chars_per_comment: int = Field(
        default=500, ge=1, le=2000, description="Maximum characters per comment (default: 500)"
    )
    max_comments: int = Field(
        default=5, ge=1, le=30, description="Maximum number of comments to fetch (default: 5)"
    )


def create_hn_tools(hn: HackerNewsClient) -> list[Tool]:
    """Lightweight Hacker News lookups sized to keep the context small."""

    async def top_stories(params: TopStoriesInput):
        limit = min(params.limit, MAX_TOP_STORIES)
        story_ids = await hn.get_top_story_ids(limit)
        return {
            "story_ids": story_ids,
            "message": (
                f"Fetched {len(story_ids)} story IDs. "
                "Use get_hacker_news_story to fetch details for each."
            ),
        }

    async def story(params: StoryInput):
        item = await hn.get_story(params.story_id)
        return {
            "id": item.id,
            "title": item.title,
            "url": item.link,
            "score": item.score,
            "descendants": item.descendants,
            "comment_ids": item.kids[:10],
        }

    async def comments(params: CommentsInput):
        cleaned = await hn.get_comments(
            params.comment_ids, params.max_comments, params.max_chars_per_comment
        )
        return {
            "comments": [comment.model_dump() for comment in cleaned],
            "total_fetched": len(cleaned),
            "chars_per_comment": params.max_chars_per_comment,
        }

    return [
        Tool(
            "get_top_hacker_news_stories",
            "Fetch the IDs of top stories from Hacker News (IDs only; use "
            "get_hacker_news_story for details)",
            TopStoriesInput,
            top_stories,
        ),
        Tool(
            "get_hacker_news_story",
            "Fetch a Hacker News story by ID (title, url, score, comment count, comment IDs)",
            StoryInput,
            story,
        ),
        Tool(
            "get_hacker_news_comments",
            "Fetch comments by ID with cleaned, length-limited text",
            CommentsInput,
            comments,
        ),
    ]


def build_toolset(slack: SlackClient, hn: HackerNewsClient) -> Toolset:
    """The full toolset handed to the model."""
    return Toolset([*create_slack_tools(slack), *create_hn_tools(hn)])
