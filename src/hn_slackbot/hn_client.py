"""Hacker News API client for fetching stories and comments."""

import asyncio

import httpx
import structlog
from pydantic import ValidationError

from .models import CleanedComment, Comment, ItemType, Story, StoryWithComments

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://hacker-news.firebaseio.com/v0"

# Upper bound on how many top story IDs a caller may ask for.
MAX_TOP_STORIES = 30


class HNAPIError(Exception):
    """Base exception for HN API errors."""

    pass


class HNRateLimitError(HNAPIError):
    """Rate limit exceeded."""

    pass


class HNNotFoundError(HNAPIError):
    """Item not found."""

    pass


class HackerNewsClient:
    """Async client for the Hacker News Firebase API.

    Story-level fetches raise on failure; comment fetches are soft and drop
    whatever could not be loaded.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30.0):
        """Initialize the HN API client.

        Args:
            base_url: HN API base URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # HTTP client (initialized lazily)
        self._client: httpx.AsyncClient | None = None

        logger.info("HN client initialized", base_url=self.base_url, timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": "HN-Slackbot/1.0"},
            )
        return self._client

    async def _make_request(self, endpoint: str):
        """GET an endpoint and decode its JSON body.

        Args:
            endpoint: API endpoint (without base URL)

        Returns:
            Decoded JSON payload

        Raises:
            HNAPIError: For API-related errors
            HNRateLimitError: When rate limited
            HNNotFoundError: When item not found or the API returns null
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = await self.client.get(url)
        except httpx.TimeoutException as e:
            raise HNAPIError(f"Request timeout for {endpoint}") from e
        except httpx.RequestError as e:
            raise HNAPIError(f"Request failed for {endpoint}: {e}") from e

        if response.status_code == 404:
            raise HNNotFoundError(f"Item not found: {endpoint}")
        elif response.status_code == 429:
            raise HNRateLimitError("HN API rate limit exceeded")
        elif response.status_code != 200:
            raise HNAPIError(f"HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise HNAPIError(f"Invalid JSON from {endpoint}") from e

        if data is None:
            raise HNNotFoundError(f"Item not found or deleted: {endpoint}")

        logger.debug("API request successful", endpoint=endpoint)
        return data

    async def get_top_story_ids(self, limit: int = 10) -> list[int]:
        """Fetch the current top story IDs in ranking order.

        Args:
            limit: Number of IDs to return, capped at MAX_TOP_STORIES

        Returns:
            List of story IDs

        Raises:
            HNAPIError: If API request fails
        """
        limit = max(0, min(limit, MAX_TOP_STORIES))
        logger.info("Fetching top stories", limit=limit)

        try:
            data = await self._make_request("topstories.json")
        except HNAPIError as e:
            logger.error("Failed to fetch top stories", error=str(e))
            raise HNAPIError(f"Failed to fetch top stories: {e}") from e

        if not isinstance(data, list):
            raise HNAPIError("Unexpected top stories payload")

        story_ids = data[:limit]
        logger.info("Retrieved top stories", count=len(story_ids))
        return story_ids

    async def get_item(self, item_id: int) -> dict:
        """Fetch a raw item (story/comment) by ID.

        Raises:
            HNAPIError: If the item could not be fetched
        """
        return await self._make_request(f"item/{item_id}.json")

    async def get_story(self, story_id: int) -> Story:
        """Fetch a single story by ID and parse into Story model.

        Raises:
            HNAPIError: If the story could not be fetched or parsed
        """
        data = await self.get_item(story_id)

        try:
            story = Story(**data)
        except (ValidationError, TypeError) as e:
            logger.warning("Invalid story data", story_id=story_id, error=str(e))
            raise HNAPIError(f"Invalid story data for {story_id}") from e

        logger.debug("Story fetched successfully", story_id=story_id, title=story.title)
        return story

    async def get_stories(self, story_ids: list[int]) -> list[Story]:
        """Fetch multiple stories concurrently, keeping the input order.

        Any failing fetch aborts the whole batch.
        """
        logger.info("Fetching story batch", count=len(story_ids))
        stories = await asyncio.gather(*[self.get_story(story_id) for story_id in story_ids])
        return list(stories)

    async def get_comment(self, comment_id: int) -> Comment | None:
        """Fetch a single comment by ID.

        Returns:
            Comment object or None if it could not be fetched or parsed
        """
        try:
            data = await self.get_item(comment_id)
            comment = Comment(**data)
        except HNNotFoundError:
            logger.debug("Comment not found", comment_id=comment_id)
            return None
        except HNAPIError as e:
            logger.warning("Failed to fetch comment", comment_id=comment_id, error=str(e))
            return None
        except (ValidationError, TypeError) as e:
            logger.warning("Invalid comment data", comment_id=comment_id, error=str(e))
            return None

        if comment.type != ItemType.COMMENT:
            logger.debug("Item is not a comment", item_id=comment_id, item_type=comment.type)
            return None

        if not comment.is_valid:
            logger.debug("Comment is dead or deleted", comment_id=comment_id)
            return None

        return comment

    async def get_comments(
        self, comment_ids: list[int], max_comments: int = 5, max_chars: int = 500
    ) -> list[CleanedComment]:
        """Fetch and clean the first ``max_comments`` comments.

        Comments that fail to load or have no text are omitted; the remaining
        ones keep the order of ``comment_ids``.
        """
        limited_ids = comment_ids[:max_comments]
        if not limited_ids:
            return []

        comments = await asyncio.gather(*[self.get_comment(cid) for cid in limited_ids])

        return [
            comment.cleaned(max_chars)
            for comment in comments
            if comment is not None and comment.has_text
        ]

    async def get_story_comments(
        self, story: Story, max_comments: int = 3, max_chars: int = 500
    ) -> list[CleanedComment]:
        """Fetch top-level comments for a story."""
        if not story.kids:
            return []

        comments = await self.get_comments(story.kids, max_comments, max_chars)

        logger.debug(
            "Story comments fetched",
            story_id=story.id,
            requested=min(len(story.kids), max_comments),
            valid_comments=len(comments),
        )
        return comments

    async def get_top_stories_with_comments(
        self, story_count: int = 10, comment_count: int = 3, max_chars: int = 300
    ) -> list[StoryWithComments]:
        """Fetch top stories and, per story, their first few comments.

        Story fetches run in parallel, then each story's comment fetches run in
        parallel. Errors on the story list or a story abort the call.
        """
        story_ids = await self.get_top_story_ids(story_count)
        stories = await self.get_stories(story_ids)

        if comment_count <= 0:
            return [StoryWithComments(story=story) for story in stories]

        comment_lists = await asyncio.gather(
            *[self.get_story_comments(story, comment_count, max_chars) for story in stories]
        )

        logger.info(
            "Fetched stories with comments",
            stories=len(stories),
            comments=sum(len(c) for c in comment_lists),
        )

        return [
            StoryWithComments(story=story, comments=comments)
            for story, comments in zip(stories, comment_lists)
        ]

    async def close(self):
        """Close the HTTP client connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("HN client closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
