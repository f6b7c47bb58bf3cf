"""Data models for Hacker News items and chat conversations."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from .text import clean_and_limit_text

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"

UNTITLED = "Untitled"


class ItemType(str, Enum):
    """Types of Hacker News items."""

    STORY = "story"
    JOB = "job"
    COMMENT = "comment"
    POLL = "poll"
    POLLOPT = "pollopt"


class HNItem(BaseModel):
    """Base model for Hacker News items."""

    id: int
    by: str | None = None
    time: int = Field(default=0, description="Unix timestamp")
    type: ItemType = ItemType.STORY
    dead: bool = False
    deleted: bool = False

    @property
    def is_valid(self) -> bool:
        """Check if item is valid (not dead or deleted)."""
        return not self.dead and not self.deleted


class Story(HNItem):
    """Represents a Hacker News story."""

    title: str = UNTITLED
    url: str | None = None
    text: str | None = None
    score: int = 0
    descendants: int = Field(default=0, description="Number of comments")
    kids: list[int] = Field(default_factory=list, description="Comment IDs")

    @field_validator("title", mode="before")
    @classmethod
    def title_or_placeholder(cls, v):
        if not isinstance(v, str) or not v.strip():
            return UNTITLED
        return v.strip()

    @field_validator("descendants", mode="before")
    @classmethod
    def descendants_default(cls, v):
        return v or 0

    @property
    def has_url(self) -> bool:
        """Check if story has an external URL."""
        return self.url is not None and self.url.strip() != ""

    @property
    def link(self) -> str:
        """External URL, or the HN discussion page for text posts."""
        if self.has_url:
            return self.url
        return HN_ITEM_URL.format(id=self.id)

    @property
    def comment_count(self) -> int:
        """Get number of comments."""
        return self.descendants

    def __str__(self) -> str:
        return f"{self.title} ({self.score} points, {self.comment_count} comments)"


class Comment(HNItem):
    """Represents a Hacker News comment."""

    type: ItemType = ItemType.COMMENT
    text: str | None = None
    parent: int | None = Field(default=None, description="Parent item ID")
    kids: list[int] = Field(default_factory=list, description="Reply IDs")

    @property
    def has_text(self) -> bool:
        """Check if comment has text content."""
        return self.text is not None and self.text.strip() != ""

    def cleaned(self, max_chars: int = 500) -> "CleanedComment":
        """Return the comment with its HTML stripped and length bounded."""
        return CleanedComment(
            id=self.id,
            author=self.by,
            text=clean_and_limit_text(self.text, max_chars),
            time=self.time,
        )


class CleanedComment(BaseModel):
    """Comment text ready to be shown to a model or a person."""

    id: int
    author: str | None = None
    text: str
    time: int = 0


class StoryWithComments(BaseModel):
    """A story together with its first few cleaned comments."""

    story: Story
    comments: list[CleanedComment] = Field(default_factory=list)


ChatKey = tuple[str | int, ...]


class MessagePart(BaseModel):
    """A single part of a chat message."""

    type: Literal["text"] = "text"
    text: str


class ChatMessage(BaseModel):
    """A message in a conversation with the model."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant", "system"]
    parts: list[MessagePart] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_text(
        cls,
        role: Literal["user", "assistant", "system"],
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> "ChatMessage":
        return cls(role=role, parts=[MessagePart(text=text)], metadata=metadata)

    @property
    def text(self) -> str:
        """All text parts joined with blank lines."""
        return "\n\n".join(part.text for part in self.parts if part.text)


class Chat(BaseModel):
    """A conversation owned by the chat runtime, keyed by a composite key."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    key: ChatKey
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
