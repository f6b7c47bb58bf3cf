"""Tests for the model tools."""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from hn_slackbot.hn_client import HNAPIError
from hn_slackbot.models import CleanedComment
from hn_slackbot.tools import Tool, Toolset, build_toolset, create_hn_tools


class NumberInput(BaseModel):
    value: int


class TestToolset:
    """Invocation and error reporting."""

    @pytest.fixture
    def toolset(self):
        async def double(params: NumberInput):
            return {"result": params.value * 2}

        async def explode(params: NumberInput):
            raise RuntimeError("boom")

        return Toolset(
            [
                Tool("double", "Double a number", NumberInput, double),
                Tool("explode", "Always fails", NumberInput, explode),
            ]
        )

    @pytest.mark.asyncio
    async def test_invoke(self, toolset):
        assert json.loads(await toolset.invoke("double", '{"value": 21}')) == {"result": 42}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, toolset):
        result = json.loads(await toolset.invoke("missing", "{}"))
        assert result == {"error": "Unknown tool: missing"}

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, toolset):
        result = json.loads(await toolset.invoke("double", '{"value": "many"}'))
        assert result["error"].startswith("Invalid arguments")

    @pytest.mark.asyncio
    async def test_tool_failure_reported(self, toolset):
        result = json.loads(await toolset.invoke("explode", '{"value": 1}'))
        assert result == {"error": "boom"}

    def test_openai_declarations(self, toolset):
        declarations = toolset.to_openai()

        assert [d["function"]["name"] for d in declarations] == ["double", "explode"]
        assert declarations[0]["function"]["parameters"]["properties"]["value"]["type"] == "integer"

    def test_full_toolset(self, slack, mock_hn_client):
        toolset = build_toolset(slack, mock_hn_client)

        assert len(toolset) == 9
        for name in (
            "send_slack_message",
            "post_to_slack_channel",
            "react_to_message",
            "get_user_info",
            "report_status",
            "read_messages",
            "get_top_hacker_news_stories",
            "get_hacker_news_story",
            "get_hacker_news_comments",
        ):
            assert name in toolset


class TestSlackTools:
    """Slack tools delegate to SlackClient."""

    @pytest.fixture
    def toolset(self, slack, mock_hn_client):
        return build_toolset(slack, mock_hn_client)

    @pytest.mark.asyncio
    async def test_post_to_channel(self, toolset, mock_web_client):
        result = await toolset.invoke(
            "post_to_slack_channel", json.dumps({"channel": "C1", "text": "*Digest*"})
        )

        assert json.loads(result) == "Message posted successfully"
        mock_web_client.chat_postMessage.assert_awaited_once_with(
            channel="C1", text="*Digest*", unfurl_links=False, unfurl_media=False
        )

    @pytest.mark.asyncio
    async def test_send_in_thread(self, toolset, mock_web_client):
        result = await toolset.invoke(
            "send_slack_message", json.dumps({"channel": "C1", "text": "hi", "thread_ts": "1.1"})
        )

        assert json.loads(result) == {"ok": True, "ts": "1700000000.000100"}
        assert mock_web_client.chat_postMessage.call_args.kwargs["thread_ts"] == "1.1"

    @pytest.mark.asyncio
    async def test_report_status_clears(self, toolset, mock_web_client):
        result = await toolset.invoke(
            "report_status", json.dumps({"channel": "C1", "thread_ts": "1.1"})
        )

        assert json.loads(result) == {"ok": True, "cleared": True}
        mock_web_client.assistant_threads_setStatus.assert_awaited_once_with(
            channel_id="C1", thread_ts="1.1", status=""
        )


class TestHNTools:
    """Hacker News tools."""

    @pytest.fixture
    def toolset(self, mock_hn_client):
        return Toolset(create_hn_tools(mock_hn_client))

    @pytest.mark.asyncio
    async def test_top_stories_capped(self, toolset, mock_hn_client):
        mock_hn_client.get_top_story_ids.return_value = list(range(30))

        result = json.loads(await toolset.invoke("get_top_hacker_news_stories", '{"limit": 100}'))

        mock_hn_client.get_top_story_ids.assert_awaited_once_with(30)
        assert len(result["story_ids"]) == 30
        assert "get_hacker_news_story" in result["message"]

    @pytest.mark.asyncio
    async def test_story_details(self, toolset, mock_hn_client, sample_ask_hn):
        mock_hn_client.get_story.return_value = sample_ask_hn

        result = json.loads(
            await toolset.invoke("get_hacker_news_story", json.dumps({"story_id": sample_ask_hn.id}))
        )

        assert result["title"] == sample_ask_hn.title
        assert result["url"] == "https://news.ycombinator.com/item?id=38123470"
        assert result["comment_ids"] == sample_ask_hn.kids[:10]

    @pytest.mark.asyncio
    async def test_story_error_goes_back_to_model(self, toolset, mock_hn_client):
        mock_hn_client.get_story.side_effect = HNAPIError("Item not found or deleted")

        result = json.loads(await toolset.invoke("get_hacker_news_story", '{"story_id": 1}'))

        assert result == {"error": "Item not found or deleted"}

    @pytest.mark.asyncio
    async def test_comments(self, toolset, mock_hn_client):
        mock_hn_client.get_comments.return_value = [
            CleanedComment(id=1, author="pg", text="Short and clean", time=1700000000)
        ]

        result = json.loads(
            await toolset.invoke(
                "get_hacker_news_comments",
                json.dumps({"comment_ids": [1, 2], "max_chars_per_comment": 200}),
            )
        )

        mock_hn_client.get_comments.assert_awaited_once_with([1, 2], 5, 200)
        assert result["total_fetched"] == 1
        assert result["chars_per_comment"] == 200
        assert result["comments"][0]["author"] == "pg"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments",
        [
            {"comment_ids": [1, 2, 3], "max_comments": -1},
            {"comment_ids": [1, 2, 3], "max_comments": 0},
            {"comment_ids": [1], "max_chars_per_comment": -5},
        ],
    )
    async def test_comment_limits_must_be_positive(self, toolset, mock_hn_client, arguments):
        result = json.loads(await toolset.invoke("get_hacker_news_comments", json.dumps(arguments)))

        assert result["error"].startswith("Invalid arguments")
        mock_hn_client.get_comments.assert_not_called()
