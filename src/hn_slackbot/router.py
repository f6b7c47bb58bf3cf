"""Inbound routing: the summary webhook and Slack events."""

from typing import Any, Protocol

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from slack_bolt.async_app import AsyncApp
from slack_sdk.web.async_client import AsyncWebClient

from .chat import ChatRuntime, message_from_event
from .slack_client import SlackClient
from .summary import HNSummaryPipeline

logger = structlog.get_logger(__name__)

SUMMARY_PATH = "/hn-summary"

DEFAULT_STATUS = "is typing..."

FORWARDED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


async def handle_app_mention(
    event: dict[str, Any],
    slack: SlackClient,
    runtime: ChatRuntime,
    status: str = DEFAULT_STATUS,
) -> None:
    """Relay an @mention to the thread's chat and show the working status."""
    channel = event.get("channel")
    thread_ts = event.get("thread_ts") or event.get("ts")
    if not channel or not thread_ts:
        return

    chat = await runtime.upsert(("slack", channel, thread_ts))
    await runtime.send_messages(chat.id, [message_from_event(event)])
    await slack.set_thread_status(channel, thread_ts, status)

    logger.info("Mention relayed", chat_id=chat.id, channel=channel, thread_ts=thread_ts)


async def handle_direct_message(
    event: dict[str, Any],
    slack: SlackClient,
    runtime: ChatRuntime,
    status: str = DEFAULT_STATUS,
) -> None:
    """Relay a direct message to the channel's chat.

    Edits, other subtypes, bot messages and anything that is not a DM are
    ignored.
    """
    if event.get("subtype") or event.get("bot_id"):
        return

    channel = event.get("channel")
    if not channel or not await slack.is_direct_conversation(channel):
        return

    chat = await runtime.upsert(("slack", channel))
    await runtime.send_messages(chat.id, [message_from_event(event)])
    await slack.set_thread_status(channel, event.get("thread_ts") or event.get("ts"), status)

    logger.info("Direct message relayed", chat_id=chat.id, channel=channel)


def register_handlers(app: AsyncApp, runtime: ChatRuntime, status: str = DEFAULT_STATUS) -> None:
    """Attach the mention and DM listeners to a Bolt app."""

    @app.event("app_mention")
    async def on_app_mention(event: dict, client: AsyncWebClient):
        await handle_app_mention(event, SlackClient(client), runtime, status)

    @app.event("message")
    async def on_message(event: dict, client: AsyncWebClient):
        await handle_direct_message(event, SlackClient(client), runtime, status)


class SlackRequestHandler(Protocol):
    """Anything with Bolt's ``handle(request)`` coroutine."""

    async def handle(self, req: Request) -> Any: ...


def create_app(
    pipeline: HNSummaryPipeline,
    slack_handler: SlackRequestHandler,
    lifespan=None,
) -> FastAPI:
    """Build the HTTP app.

    ``POST /hn-summary`` runs the summary pipeline; every other request is
    handed to the Slack request handler.
    """
    api = FastAPI(title="HN Slack bot", lifespan=lifespan)

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("Received request", method=request.method, path=request.url.path)
        return await call_next(request)

    @api.post(SUMMARY_PATH, response_class=PlainTextResponse)
    async def hn_summary():
        logger.info("Processing summary webhook", strategy=pipeline.strategy.name)
        try:
            message = await pipeline.run()
        except Exception as e:
            logger.exception("Error posting HN summary", error=str(e))
            return PlainTextResponse(f"Error posting summary: {e}", status_code=500)
        return PlainTextResponse(message, status_code=200)

    @api.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        return PlainTextResponse("ok")

    @api.api_route("/{path:path}", methods=FORWARDED_METHODS)
    async def slack_events(request: Request):
        return await slack_handler.handle(request)

    return api
