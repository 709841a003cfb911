"""Progressive, chunked display of an assistant reply."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING

from .session import ChatSession

if TYPE_CHECKING:
    from .controller import ConversationView

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10
DEFAULT_INTERVAL_SECONDS = 1 / 60


def chunk_text(text: str, chunk_size: int) -> list[str]:
    """Split ``text`` into ``ceil(len / chunk_size)`` consecutive chunks."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    count = math.ceil(len(text) / chunk_size)
    return [text[i * chunk_size : (i + 1) * chunk_size] for i in range(count)]


@dataclass(frozen=True)
class RevealHandle:
    """Identifies the message a reveal writes into and the session generation it belongs to."""

    index: int
    version: int

    def is_current(self, session: ChatSession) -> bool:
        return session.version == self.version and 0 <= self.index < len(
            session.messages
        )


class RevealEngine:
    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size
        self.interval_seconds = max(0.0, interval_seconds)

    async def reveal(
        self,
        session: ChatSession,
        index: int,
        text: str,
        view: ConversationView,
    ) -> int:
        """Append ``text`` to message ``index`` one chunk per tick.

        Returns the number of chunks written. Stops early, without touching
        the session, once the conversation has been reset underneath it.
        """
        handle = RevealHandle(index, session.version)
        follow = view.is_at_bottom()
        chunks = chunk_text(text, self.chunk_size)
        steps = 0
        for position, chunk in enumerate(chunks):
            if not handle.is_current(session):
                LOGGER.debug(
                    "reveal.abandoned",
                    extra={"event": "reveal.abandoned", "steps": steps},
                )
                break
            message = session.messages[index]
            session.update_content(index, message.content + chunk)
            steps += 1
            view.message_updated(index, message)
            if follow:
                view.scroll_to_bottom()
            if position < len(chunks) - 1:
                await asyncio.sleep(self.interval_seconds)
        return steps
