"""In-process conversation runtime.

Chats are looked up by a composite key such as ``("slack", channel, thread_ts)``.
Sending messages with the ``enqueue`` behavior schedules a model run for the
chat; only one run per chat is active at a time and messages that arrive
during a run trigger one more run once it finishes.
"""

import asyncio
from typing import Any, Awaitable, Callable, Literal

import structlog

from .models import Chat, ChatKey, ChatMessage

logger = structlog.get_logger(__name__)

ChatHandler = Callable[[Chat, list[ChatMessage]], Awaitable[ChatMessage | None]]

SendBehavior = Literal["enqueue", "append"]


class ChatNotFoundError(KeyError):
    """No chat with the requested ID."""

    pass


class ChatRuntime:
    """Registry of chats plus the worker that hands them to the model."""

    def __init__(self, handler: ChatHandler | None = None):
        self.handler = handler
        self._chats: dict[str, Chat] = {}
        self._keys: dict[ChatKey, str] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._pending: set[str] = set()
        self._one_shot: set[str] = set()
        self._failures: list[BaseException] = []

    def set_handler(self, handler: ChatHandler) -> None:
        self.handler = handler

    async def upsert(self, key: ChatKey, one_shot: bool = False) -> Chat:
        """Return the chat for ``key``, creating it on first use.

        A ``one_shot`` chat is forgotten once its run finishes.
        """
        key = tuple(key)
        chat_id = self._keys.get(key)
        if chat_id is not None:
            return self._chats[chat_id]

        chat = Chat(key=key)
        self._chats[chat.id] = chat
        self._keys[key] = chat.id
        if one_shot:
            self._one_shot.add(chat.id)
        logger.info("Chat created", chat_id=chat.id, key=list(key), one_shot=one_shot)
        return chat

    def get(self, chat_id: str) -> Chat:
        try:
            return self._chats[chat_id]
        except KeyError:
            raise ChatNotFoundError(chat_id) from None

    async def send_messages(
        self,
        chat_id: str,
        messages: list[ChatMessage],
        behavior: SendBehavior = "enqueue",
    ) -> None:
        """Append messages to a chat and, for ``enqueue``, schedule a run."""
        chat = self.get(chat_id)
        chat.messages.extend(messages)

        logger.info(
            "Messages appended",
            chat_id=chat_id,
            count=len(messages),
            behavior=behavior,
            total=len(chat.messages),
        )

        if behavior == "enqueue":
            self._schedule(chat)

    def _schedule(self, chat: Chat) -> None:
        worker = self._workers.get(chat.id)
        if worker is not None and not worker.done():
            self._pending.add(chat.id)
            return
        task = asyncio.create_task(self._run(chat))
        task.add_done_callback(lambda done: self._finish(chat, done))
        self._workers[chat.id] = task

    def _finish(self, chat: Chat, task: asyncio.Task) -> None:
        if self._workers.get(chat.id) is task:
            del self._workers[chat.id]
        if not task.cancelled() and task.exception() is not None:
            self._failures.append(task.exception())
        if chat.id in self._one_shot and chat.id not in self._workers:
            self.discard(chat.id)

    def discard(self, chat_id: str) -> None:
        """Forget a chat and its key."""
        chat = self._chats.pop(chat_id, None)
        if chat is not None:
            self._keys.pop(chat.key, None)
        self._one_shot.discard(chat_id)
        self._pending.discard(chat_id)

    async def _run(self, chat: Chat) -> None:
        if self.handler is None:
            logger.warning("No chat handler configured", chat_id=chat.id)
            return

        while True:
            self._pending.discard(chat.id)
            snapshot = list(chat.messages)

            try:
                reply = await self.handler(chat, snapshot)
            except Exception:
                logger.exception("Chat run failed", chat_id=chat.id)
                self._pending.discard(chat.id)
                raise

            # Messages that arrived during the run stay after the reply.
            if reply is not None:
                chat.messages.insert(len(snapshot), reply)

            if chat.id not in self._pending:
                return

    async def wait_idle(self) -> None:
        """Wait until no chat has a run in progress.

        Raises the first failure of a finished run, if any.
        """
        while True:
            workers = [w for w in self._workers.values() if not w.done()]
            if not workers:
                break
            await asyncio.gather(*workers, return_exceptions=True)

        if self._failures:
            failure, self._failures = self._failures[0], []
            raise failure

    async def close(self) -> None:
        """Cancel outstanding runs."""
        workers = [w for w in self._workers.values() if not w.done()]
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()


def message_from_event(event: dict[str, Any]) -> ChatMessage:
    """Build a user message from a Slack message or app_mention event.

    The metadata carries where the message came from so the model can reply
    in the same thread and clear its status afterwards.
    """
    channel = event.get("channel")
    thread_ts = event.get("thread_ts") or event.get("ts")
    user = event.get("user")
    text = event.get("text") or ""

    lines = [f"<@{user}> wrote:" if user else "Message:", text]
    for attachment in event.get("files") or []:
        name = attachment.get("name") or attachment.get("title") or "file"
        lines.append(f"[attached file: {name}]")

    return ChatMessage.from_text(
        "user",
        "\n".join(lines),
        metadata={
            "channel": channel,
            "thread_ts": thread_ts,
            "ts": event.get("ts"),
            "user": user,
            "team": event.get("team"),
        },
    )
