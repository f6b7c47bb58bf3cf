"""Wires the clients, runtime and routes into a runnable app."""

from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from fastapi import FastAPI
from slack_bolt.adapter.fastapi.async_handler import AsyncSlackRequestHandler
from slack_bolt.async_app import AsyncApp

from .agent import AgentRunner
from .chat import ChatRuntime
from .config import Settings, get_settings
from .hn_client import HackerNewsClient
from .logging_config import configure_logging
from .router import create_app, register_handlers
from .slack_client import SlackClient
from .summary import HNSummaryPipeline, build_summary_strategy
from .tools import build_toolset

logger = structlog.get_logger(__name__)


@dataclass
class BotServices:
    """Everything one running bot needs."""

    settings: Settings
    bolt_app: AsyncApp
    slack: SlackClient
    hn_client: HackerNewsClient
    runtime: ChatRuntime
    agent: AgentRunner
    pipeline: HNSummaryPipeline

    async def close(self) -> None:
        """Close all component connections."""
        logger.info("Closing bot services")
        await self.runtime.close()
        await self.hn_client.close()
        await self.agent.close()


def build_services(settings: Settings, strategy: str | None = None) -> BotServices:
    """Compose the bot. ``strategy`` overrides the configured summary strategy."""
    bolt_app = AsyncApp(
        token=settings.slack_bot_token,
        signing_secret=settings.slack_signing_secret,
    )
    slack = SlackClient(bolt_app.client)
    hn_client = HackerNewsClient(
        base_url=str(settings.hn_api_base_url), timeout=settings.hn_timeout
    )

    runtime = ChatRuntime()
    agent = AgentRunner(settings, build_toolset(slack, hn_client))
    runtime.set_handler(agent.respond)

    register_handlers(bolt_app, runtime, settings.slack_typing_status)

    pipeline = HNSummaryPipeline(
        hn_client,
        build_summary_strategy(settings, runtime, slack, strategy),
        story_count=settings.summary_story_count,
        comment_count=settings.summary_comment_count,
        comment_chars=settings.summary_comment_chars,
    )

    logger.info("Bot services built", settings=str(settings))
    return BotServices(
        settings=settings,
        bolt_app=bolt_app,
        slack=slack,
        hn_client=hn_client,
        runtime=runtime,
        agent=agent,
        pipeline=pipeline,
    )


def build_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI app for uvicorn."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.close()

    app = create_app(
        services.pipeline,
        AsyncSlackRequestHandler(services.bolt_app),
        lifespan=lifespan,
    )
    app.state.services = services
    return app
