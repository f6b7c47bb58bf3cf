"""Slack Web API wrapper used by the event handlers, tools and summaries."""

from typing import Any

import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

logger = structlog.get_logger(__name__)


# Slack message limits
SLACK_MAX_TEXT_LENGTH = 3000
SLACK_MAX_BLOCKS = 50
SLACK_MAX_SECTION_TEXT = 3000
SLACK_MAX_HEADER_TEXT = 150


class SlackError(Exception):
    """Base exception for Slack-related errors."""

    pass


class SlackClient:
    """Async client for the handful of Slack Web API calls the bot needs."""

    def __init__(self, client: AsyncWebClient):
        """Initialize the Slack client.

        Args:
            client: slack_sdk client, usually the Bolt app's own client
        """
        self.client = client

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
        thread_ts: str | None = None,
    ) -> str | None:
        """Post a message, optionally with blocks and inside a thread.

        Returns:
            Timestamp of the posted message

        Raises:
            SlackError: If the API call fails
        """
        kwargs: dict[str, Any] = {
            "channel": channel,
            "text": truncate_text(text, SLACK_MAX_TEXT_LENGTH) if blocks else text,
            "unfurl_links": False,
            "unfurl_media": False,
        }
        if blocks:
            kwargs["blocks"] = ensure_block_limits(blocks)
        if thread_ts:
            kwargs["thread_ts"] = thread_ts

        try:
            response = await self.client.chat_postMessage(**kwargs)
        except SlackApiError as e:
            logger.error("Slack post failed", channel=channel, error=e.response.get("error"))
            raise SlackError(f"Failed to post message: {e.response.get('error')}") from e

        logger.info("Message posted", channel=channel, thread_ts=thread_ts, blocks=bool(blocks))
        return response.get("ts")

    async def set_thread_status(self, channel: str, thread_ts: str, status: str) -> None:
        """Set the transient status shown on a thread. An empty status clears it."""
        try:
            await self.client.assistant_threads_setStatus(
                channel_id=channel, thread_ts=thread_ts, status=status
            )
        except SlackApiError as e:
            logger.warning(
                "Failed to set thread status",
                channel=channel,
                thread_ts=thread_ts,
                error=e.response.get("error"),
            )
            raise SlackError(f"Failed to set thread status: {e.response.get('error')}") from e

        logger.debug("Thread status set", channel=channel, thread_ts=thread_ts, status=status)

    async def clear_thread_status(self, channel: str, thread_ts: str) -> None:
        await self.set_thread_status(channel, thread_ts, "")

    async def is_direct_conversation(self, channel: str) -> bool:
        """Check with conversations.info whether ``channel`` is a DM."""
        try:
            response = await self.client.conversations_info(channel=channel)
        except SlackApiError as e:
            logger.warning("Conversation lookup failed", channel=channel, error=e.response.get("error"))
            return False

        info = response.get("channel") or {}
        return bool(info.get("is_im"))

    async def add_reaction(self, channel: str, timestamp: str, emoji: str) -> None:
        try:
            await self.client.reactions_add(
                channel=channel, timestamp=timestamp, name=emoji.strip(":")
            )
        except SlackApiError as e:
            raise SlackError(f"Failed to add reaction: {e.response.get('error')}") from e

    async def get_user_info(self, user_id: str) -> dict[str, Any]:
        """Return the useful subset of users.info for a user."""
        try:
            response = await self.client.users_info(user=user_id)
        except SlackApiError as e:
            raise SlackError(f"Failed to fetch user: {e.response.get('error')}") from e

        user = response.get("user") or {}
        profile = user.get("profile") or {}
        return {
            "id": user.get("id", user_id),
            "name": user.get("name"),
            "real_name": user.get("real_name") or profile.get("real_name"),
            "display_name": profile.get("display_name"),
            "title": profile.get("title"),
            "timezone": user.get("tz"),
            "is_bot": user.get("is_bot", False),
        }

    async def read_messages(
        self, channel: str, thread_ts: str | None = None, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Read a thread's replies, or the channel history when no thread is given."""
        try:
            if thread_ts:
                response = await self.client.conversations_replies(
                    channel=channel, ts=thread_ts, limit=limit
                )
            else:
                response = await self.client.conversations_history(channel=channel, limit=limit)
        except SlackApiError as e:
            raise SlackError(f"Failed to read messages: {e.response.get('error')}") from e

        return [
            {
                "ts": message.get("ts"),
                "user": message.get("user") or message.get("bot_id"),
                "text": message.get("text", ""),
                "thread_ts": message.get("thread_ts"),
            }
            for message in response.get("messages") or []
        ]

    async def auth_test(self) -> dict[str, Any]:
        """Return auth.test details (used by the health check)."""
        try:
            response = await self.client.auth_test()
        except SlackApiError as e:
            raise SlackError(f"Slack auth failed: {e.response.get('error')}") from e
        return {"team": response.get("team"), "user": response.get("user")}


def truncate_text(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def ensure_block_limits(blocks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Ensure a block list fits within Slack limits.

    Keeps the first and last block (header and footer) and drops blocks from
    the middle when there are too many.
    """
    if len(blocks) <= SLACK_MAX_BLOCKS:
        return blocks

    logger.warning("Message too long, truncating", block_count=len(blocks))

    notice = {
        "type": "section",
        "text": {"type": "mrkdwn", "text": "_⚠️ Message truncated due to length limits_"},
    }
    middle = blocks[1:-1][: SLACK_MAX_BLOCKS - 3]
    return [blocks[0], *middle, notice, blocks[-1]]
