"""Configuration management for the HN Slack bot using Pydantic settings."""

from functools import lru_cache

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUMMARY_CHANNEL_ID = "C09FCMVAUB0"

SUMMARY_STRATEGIES = ("prompt", "direct")


class Settings(BaseSettings):
    """Pydantic settings for the bot."""

    # Slack
    slack_bot_token: str = Field(..., description="Slack bot token (xoxb-)")
    slack_signing_secret: str = Field(..., description="Slack request signing secret")
    hn_summary_channel_id: str = Field(
        default=DEFAULT_SUMMARY_CHANNEL_ID,
        description="Channel that receives the scheduled HN summary",
    )
    slack_typing_status: str = Field(
        default="is typing...",
        description="Thread status shown while the model is working",
    )

    # Model runtime
    openai_api_key: str = Field(..., description="OpenAI API key for the chat model")
    openai_model: str = Field(default="gpt-4.1", description="Chat model name")
    openai_max_steps: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum model/tool rounds per conversation turn",
    )
    openai_timeout: float = Field(
        default=120.0,
        ge=5.0,
        le=600.0,
        description="OpenAI request timeout in seconds",
    )

    # Summary pipeline
    summary_strategy: str = Field(
        default="prompt", description="Summary delivery strategy (prompt or direct)"
    )
    summary_story_count: int = Field(
        default=10, ge=1, le=30, description="Stories included in the summary"
    )
    summary_comment_count: int = Field(
        default=3, ge=0, le=10, description="Comments fetched per story"
    )
    summary_comment_chars: int = Field(
        default=300, ge=50, le=2000, description="Character budget per comment"
    )

    # HN API
    hn_api_base_url: HttpUrl = Field(
        default="https://hacker-news.firebaseio.com/v0",
        description="Hacker News API base URL",
    )
    hn_timeout: float = Field(
        default=30.0, ge=1.0, le=120.0, description="HN API request timeout"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Enable JSON structured logging")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("slack_bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate Slack bot token format."""
        if not v.startswith("xoxb-"):
            raise ValueError("Slack bot token must start with 'xoxb-'")
        return v

    @field_validator("summary_strategy")
    @classmethod
    def validate_summary_strategy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUMMARY_STRATEGIES:
            raise ValueError(f"Summary strategy must be one of: {', '.join(SUMMARY_STRATEGIES)}")
        return v

    def __str__(self) -> str:
        """String representation (hiding sensitive data)."""
        return (
            f"Settings("
            f"strategy={self.summary_strategy}, "
            f"channel={self.hn_summary_channel_id})"
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings.

    Note:
        Uses lru_cache for singleton behavior. Call reload_settings() to pick
        up environment changes.
    """
    return Settings()


def reload_settings() -> Settings:
    """Force reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()
