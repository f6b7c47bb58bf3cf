"""Hacker News summary pipeline: fetch, assemble, deliver.

Two strategies share the fetch step. ``PromptSummaryStrategy`` hands the
stories and comments to the model, which writes the summary and posts it
itself. ``DirectSummaryStrategy`` posts a fixed block layout without the
model.
"""

import time
from datetime import datetime
from typing import Any, Protocol

import structlog

from .chat import ChatRuntime
from .config import Settings
from .hn_client import HackerNewsClient
from .models import ChatMessage, StoryWithComments
from .slack_client import (
    SLACK_MAX_HEADER_TEXT,
    SLACK_MAX_SECTION_TEXT,
    SlackClient,
    SlackError,
    truncate_text,
)

logger = structlog.get_logger(__name__)

STORY_SEPARATOR = "\n\n---\n\n"

ANALYSIS_INSTRUCTIONS = """Analyze these top {count} Hacker News stories and their comments. For each story, provide:
1. A brief 1-2 sentence summary of what it's about
2. Sample comments with sentiment analysis - include 1-2 actual comment excerpts that capture the discussion
3. Overall community sentiment (positive, negative, mixed, or skeptical)

Format guidelines:
- Use emojis for sentiment indicators (👍 positive, 👎 negative, 🤔 skeptical, 💬 mixed)
- Include actual comment excerpts in quotes to show what people are saying
- Keep each story's section concise but informative
- Make it engaging and easy to scan

{stories}

After analyzing, post a formatted summary to Slack channel {channel} using the post_to_slack_channel tool."""


class SummaryError(Exception):
    """Summary could not be delivered."""

    pass


class SummaryStrategy(Protocol):
    """Turns fetched stories into a payload and delivers it."""

    name: str
    include_comments: bool

    def assemble(self, stories: list[StoryWithComments]) -> Any: ...

    async def deliver(self, payload: Any) -> str: ...


def format_story_block(index: int, item: StoryWithComments) -> str:
    """Render one story and its comments as a plain-text block for the prompt."""
    story = item.story
    comments = "\n".join(f"[{c.author}]: {c.text}" for c in item.comments)
    return (
        f"Story {index}: {story.title}\n"
        f"URL: {story.link}\n"
        f"Score: {story.score} points | Comments: {story.descendants}\n"
        f"Top comments:\n{comments or 'No comments yet'}"
    )


def build_analysis_prompt(stories: list[StoryWithComments], channel: str) -> str:
    """Embed all story blocks in the sentiment-analysis instruction."""
    blocks = STORY_SEPARATOR.join(
        format_story_block(i, item) for i, item in enumerate(stories, 1)
    )
    return ANALYSIS_INSTRUCTIONS.format(count=len(stories), stories=blocks, channel=channel)


class PromptSummaryStrategy:
    """Ask the model to analyze the stories and post the summary itself."""

    name = "prompt"
    include_comments = True

    def __init__(self, runtime: ChatRuntime, channel: str):
        self.runtime = runtime
        self.channel = channel

    def assemble(self, stories: list[StoryWithComments]) -> str:
        return build_analysis_prompt(stories, self.channel)

    async def deliver(self, payload: str) -> str:
        # Every run gets a fresh conversation.
        chat = await self.runtime.upsert(("hn-summary", int(time.time() * 1000)), one_shot=True)
        await self.runtime.send_messages(
            chat.id, [ChatMessage.from_text("user", payload)], behavior="enqueue"
        )
        logger.info("Summary request queued", chat_id=chat.id, channel=self.channel)
        return "Summary request queued successfully"


class DirectSummaryStrategy:
    """Post a fixed block layout straight to Slack."""

    name = "direct"
    include_comments = False

    def __init__(self, slack: SlackClient, channel: str):
        self.slack = slack
        self.channel = channel

    def assemble(self, stories: list[StoryWithComments]) -> list[dict[str, Any]]:
        return build_summary_blocks(stories)

    async def deliver(self, payload: list[dict[str, Any]]) -> str:
        fallback = f"📰 Top {count_story_sections(payload)} Hacker News stories"
        try:
            await self.slack.post_message(self.channel, fallback, blocks=payload)
        except SlackError as e:
            raise SummaryError(f"Failed to post summary: {e}") from e
        logger.info("Summary posted", channel=self.channel, blocks=len(payload))
        return "Summary posted successfully"


def build_summary_blocks(
    stories: list[StoryWithComments], generated_at: datetime | None = None
) -> list[dict[str, Any]]:
    """Header, one section per story, a divider and a context footer."""
    generated_at = generated_at or datetime.now()

    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": truncate_text(
                    f"📰 Top {len(stories)} Hacker News Stories", SLACK_MAX_HEADER_TEXT
                ),
                "emoji": True,
            },
        }
    ]

    for index, item in enumerate(stories, 1):
        story = item.story
        metadata = " • ".join(
            [
                f"⬆️ {story.score} pts",
                f"💬 {story.comment_count} comments",
                f"👤 {story.by or 'unknown'}",
            ]
        )
        text = f"*{index}. <{story.link}|{story.title}>*\n{metadata}"
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": truncate_text(text, SLACK_MAX_SECTION_TEXT)},
            }
        )

    blocks.append({"type": "divider"})
    blocks.append(
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"Data from <https://news.ycombinator.com|Hacker News> • "
                    f"{generated_at.strftime('%Y-%m-%d %H:%M')}",
                }
            ],
        }
    )
    return blocks


def count_story_sections(blocks: list[dict[str, Any]]) -> int:
    return sum(1 for block in blocks if block.get("type") == "section")


def build_summary_strategy(
    settings: Settings,
    runtime: ChatRuntime,
    slack: SlackClient,
    name: str | None = None,
) -> SummaryStrategy:
    """Pick the configured strategy (``prompt`` or ``direct``)."""
    name = name or settings.summary_strategy
    if name == "prompt":
        return PromptSummaryStrategy(runtime, settings.hn_summary_channel_id)
    if name == "direct":
        return DirectSummaryStrategy(slack, settings.hn_summary_channel_id)
    raise ValueError(f"Unknown summary strategy: {name}")


class HNSummaryPipeline:
    """Fetch the top stories, assemble them, and deliver with one strategy."""

    def __init__(
        self,
        hn_client: HackerNewsClient,
        strategy: SummaryStrategy,
        story_count: int = 10,
        comment_count: int = 3,
        comment_chars: int = 300,
    ):
        self.hn_client = hn_client
        self.strategy = strategy
        self.story_count = story_count
        self.comment_count = comment_count
        self.comment_chars = comment_chars

    async def fetch(self) -> list[StoryWithComments]:
        comment_count = self.comment_count if self.strategy.include_comments else 0
        return await self.hn_client.get_top_stories_with_comments(
            story_count=self.story_count,
            comment_count=comment_count,
            max_chars=self.comment_chars,
        )

    async def assemble_summary(self) -> Any:
        """Fetch and assemble without delivering."""
        stories = await self.fetch()
        return self.strategy.assemble(stories)

    async def run(self) -> str:
        """Run the whole pipeline and return the strategy's confirmation.

        Raises:
            HNAPIError: If the story list or a story could not be fetched
        """
        start_time = time.time()
        logger.info(
            "Starting HN summary",
            strategy=self.strategy.name,
            story_count=self.story_count,
        )

        stories = await self.fetch()
        payload = self.strategy.assemble(stories)
        message = await self.strategy.deliver(payload)

        logger.info(
            "HN summary delivered",
            strategy=self.strategy.name,
            stories=len(stories),
            duration_seconds=round(time.time() - start_time, 2),
        )
        return message
