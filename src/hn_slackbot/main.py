"""Command-line entry points: serve the bot, run a summary, health check."""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import Any

import structlog

from .config import Settings, get_settings
from .logging_config import configure_logging

logger = structlog.get_logger(__name__)


def create_cli() -> argparse.ArgumentParser:
    """Create command-line interface."""
    parser = argparse.ArgumentParser(
        prog="hn-slackbot",
        description="Slack bot with a scheduled Hacker News summary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve Slack events and the /hn-summary webhook
  hn-slackbot serve --port 3000

  # Print the summary payload without sending anything
  hn-slackbot summary --dry-run

  # Post the block summary straight to Slack
  hn-slackbot summary --strategy direct

  # Health check
  hn-slackbot health-check
        """,
    )

    parser.add_argument("--json-logs", action="store_true", help="Output structured JSON logs")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", type=str, help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")

    summary = subparsers.add_parser("summary", help="Run the HN summary once")
    summary.add_argument(
        "--strategy",
        choices=["prompt", "direct"],
        help="Override the configured summary strategy",
    )
    summary.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the assembled summary instead of delivering it",
    )

    subparsers.add_parser("health-check", help="Check HN, Slack and OpenAI configuration")

    return parser


def serve(settings: Settings, host: str | None = None, port: int | None = None) -> int:
    """Run the FastAPI app with uvicorn."""
    import uvicorn

    from .server import build_app

    app = build_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
    return 0


async def run_summary(settings: Settings, strategy: str | None = None, dry_run: bool = False) -> int:
    """Run the summary pipeline once.

    With the prompt strategy the model run is awaited before returning, so the
    summary is posted by the time the command exits.
    """
    from .server import build_services

    services = build_services(settings, strategy)
    try:
        if dry_run:
            payload = await services.pipeline.assemble_summary()
            if isinstance(payload, str):
                print(payload)
            else:
                print(json.dumps(payload, indent=2, ensure_ascii=False))
            return 0

        message = await services.pipeline.run()
        await services.runtime.wait_idle()
        logger.info("Summary run finished", result=message)
        return 0

    except Exception as e:
        logger.error("Summary run failed", error=str(e), error_type=type(e).__name__)
        return 1

    finally:
        await services.close()


async def health_check(settings: Settings) -> dict[str, Any]:
    """Probe the HN API and Slack, and report the model configuration."""
    from .server import build_services

    services = build_services(settings)
    health: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
        "components": {},
        "overall": "unknown",
    }

    try:
        try:
            story_ids = await services.hn_client.get_top_story_ids(limit=1)
            health["components"]["hn_api"] = {
                "status": "healthy" if story_ids else "degraded",
                "details": f"Fetched {len(story_ids)} stories",
            }
        except Exception as e:
            health["components"]["hn_api"] = {"status": "unhealthy", "error": str(e)}

        try:
            auth = await services.slack.auth_test()
            health["components"]["slack"] = {"status": "healthy", **auth}
        except Exception as e:
            health["components"]["slack"] = {"status": "unhealthy", "error": str(e)}

        health["components"]["openai"] = {
            "status": "configured",
            "model": settings.openai_model,
        }
    finally:
        await services.close()

    statuses = [component["status"] for component in health["components"].values()]
    if all(status in ("healthy", "configured") for status in statuses):
        health["overall"] = "healthy"
    elif any(status == "unhealthy" for status in statuses):
        health["overall"] = "unhealthy"
    else:
        health["overall"] = "degraded"

    logger.info("Health check completed", overall_status=health["overall"])
    return health


async def run_health_check(settings: Settings) -> int:
    """Run health check and return exit code."""
    health = await health_check(settings)
    print(json.dumps(health, indent=2))
    return 0 if health["overall"] == "healthy" else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_cli()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.debug:
        settings.log_level = "DEBUG"
    if args.json_logs:
        settings.json_logs = True
    configure_logging(settings.log_level, settings.json_logs)

    command = args.command or "serve"
    if command == "serve":
        return serve(settings, getattr(args, "host", None), getattr(args, "port", None))
    if command == "summary":
        return asyncio.run(run_summary(settings, args.strategy, args.dry_run))
    return asyncio.run(run_health_check(settings))
