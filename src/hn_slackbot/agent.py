"""Model invocation: streams chat completions and runs tool calls."""

import copy
import time
from dataclasses import dataclass
from typing import AsyncIterator

import openai
import structlog
from openai import AsyncOpenAI

from .config import Settings
from .models import Chat, ChatMessage, MessagePart
from .tools import Toolset

logger = structlog.get_logger(__name__)

CLEAR_STATUS_INSTRUCTION = (
    "*INTERNAL INSTRUCTION*: Clear the status of this thread after you finish: "
    "channel={channel} thread_ts={thread_ts}"
)

SYSTEM_PROMPT = """You are a helpful Slack bot assistant.

## What you can do

Your Slack tools let you:
- Read messages from channels and threads (read_messages)
- Send messages or reply in threads with Slack mrkdwn formatting (send_slack_message)
- React to messages with emojis (react_to_message)
- Look up user profiles (get_user_info)
- Set or clear the status shown on a thread, e.g. "is analyzing..." (report_status)
- Post to any channel (post_to_slack_channel)

Your Hacker News tools let you list top stories, fetch a story, and fetch
cleaned, length-limited comments.

## Hacker News summaries

A scheduled job calls the /hn-summary webhook every morning. It collects the
top 10 Hacker News stories with up to 3 comments each and sends them to you in
a new conversation. When you receive one of these requests:
- Summarize each story in 1-2 sentences
- Quote 1-2 comment excerpts that capture the discussion
- Give the overall community sentiment: positive, negative, mixed or skeptical,
  marked with 👍 positive, 👎 negative, 🤔 skeptical, 💬 mixed
- Post the finished, easy to scan summary with post_to_slack_channel to the
  channel named in the request

## Conversations

People @mention you in channels or message you directly. Reply in the same
thread with send_slack_message, keep answers concise, and use Slack formatting
where it helps."""


class ModelInvocationError(Exception):
    """The model stream could not be created or failed midway."""

    pass


@dataclass
class TextDelta:
    text: str


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: str


@dataclass
class ToolResult:
    id: str
    name: str
    result: str


StreamEvent = TextDelta | ToolCall | ToolResult


def prepare_messages(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Add the clear-status instruction when the last message came from a thread.

    The instruction goes on a deep copy; ``messages`` itself is never modified.
    """
    if not messages:
        return messages

    metadata = messages[-1].metadata or {}
    channel = metadata.get("channel")
    thread_ts = metadata.get("thread_ts")
    if not (channel and thread_ts):
        return messages

    cloned = copy.deepcopy(messages)
    cloned[-1].parts.append(
        MessagePart(text=CLEAR_STATUS_INSTRUCTION.format(channel=channel, thread_ts=thread_ts))
    )
    return cloned


def to_openai_messages(messages: list[ChatMessage]) -> list[dict]:
    """Convert chat messages into chat-completions messages."""
    converted = [{"role": "system", "content": SYSTEM_PROMPT}]
    for message in messages:
        text = message.text
        if not text:
            continue
        converted.append({"role": message.role, "content": text})
    return converted


class AgentRunner:
    """Runs a conversation turn against the OpenAI chat completions API."""

    def __init__(
        self,
        settings: Settings,
        toolset: Toolset,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize the runner.

        Args:
            settings: Application settings with OpenAI configuration
            toolset: Tools offered to the model
            client: Preconfigured OpenAI client (created from settings if omitted)
        """
        self.settings = settings
        self.toolset = toolset
        self.model = settings.openai_model
        self.max_steps = settings.openai_max_steps
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key, timeout=settings.openai_timeout
        )

        logger.info(
            "AgentRunner initialized",
            model=self.model,
            tools=len(toolset),
            max_steps=self.max_steps,
        )

    async def stream(self, messages: list[ChatMessage]) -> AsyncIterator[StreamEvent]:
        """Stream a reply, executing tool calls between model steps.

        Raises:
            ModelInvocationError: If the API call or the stream fails
        """
        conversation = to_openai_messages(messages)
        tools = self.toolset.to_openai()

        for step in range(self.max_steps):
            text_parts: list[str] = []
            calls: dict[int, dict[str, str]] = {}

            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=conversation,
                    tools=tools or openai.NOT_GIVEN,
                    stream=True,
                )
                async for chunk in response:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    if delta is None:
                        continue
                    if delta.content:
                        text_parts.append(delta.content)
                        yield TextDelta(delta.content)
                    for fragment in delta.tool_calls or []:
                        call = calls.setdefault(
                            fragment.index, {"id": "", "name": "", "arguments": ""}
                        )
                        if fragment.id:
                            call["id"] = fragment.id
                        if fragment.function is not None:
                            call["name"] += fragment.function.name or ""
                            call["arguments"] += fragment.function.arguments or ""
            except openai.OpenAIError as e:
                logger.error("Model stream failed", step=step, error=str(e))
                raise ModelInvocationError(f"OpenAI API error: {e}") from e

            if not calls:
                logger.debug("Model finished", step=step)
                return

            ordered = [calls[index] for index in sorted(calls)]
            conversation.append(
                {
                    "role": "assistant",
                    "content": "".join(text_parts) or None,
                    "tool_calls": [
                        {
                            "id": call["id"],
                            "type": "function",
                            "function": {"name": call["name"], "arguments": call["arguments"]},
                        }
                        for call in ordered
                    ],
                }
            )

            for call in ordered:
                yield ToolCall(call["id"], call["name"], call["arguments"])
                result = await self.toolset.invoke(call["name"], call["arguments"])
                yield ToolResult(call["id"], call["name"], result)
                conversation.append(
                    {"role": "tool", "tool_call_id": call["id"], "content": result}
                )

        logger.warning("Model stopped at step limit", max_steps=self.max_steps)

    async def respond(self, chat: Chat, messages: list[ChatMessage]) -> ChatMessage | None:
        """Run one turn for ``chat`` and return the assistant's text reply."""
        start_time = time.time()
        prepared = prepare_messages(messages)

        text_parts = []
        tool_calls = 0
        async for event in self.stream(prepared):
            if isinstance(event, TextDelta):
                text_parts.append(event.text)
            elif isinstance(event, ToolCall):
                tool_calls += 1

        logger.info(
            "Chat turn completed",
            chat_id=chat.id,
            tool_calls=tool_calls,
            duration_seconds=round(time.time() - start_time, 2),
        )

        text = "".join(text_parts).strip()
        if not text:
            return None
        return ChatMessage.from_text("assistant", text)

    async def close(self):
        """Close the OpenAI client connection."""
        await self.client.close()
        logger.info("AgentRunner closed")
