"""Scrollable conversation view widget."""

from __future__ import annotations

from textual.containers import VerticalScroll

from ..session import Message
from .message import MessageBubble

BOTTOM_THRESHOLD = 1


class ConversationView(VerticalScroll):
    """A scrollable container that hosts one message bubble per message index."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.bubbles: list[MessageBubble] = []

    def add_message(
        self,
        message: Message,
        timestamp: str = "",
        final: bool = True,
    ) -> MessageBubble:
        """Create a bubble for ``message`` and schedule it for mounting."""
        bubble = MessageBubble(message, timestamp=timestamp, final=final)
        self.bubbles.append(bubble)
        self.mount(bubble)
        return bubble

    def bubble_at(self, index: int) -> MessageBubble | None:
        if 0 <= index < len(self.bubbles):
            return self.bubbles[index]
        return None

    def clear_messages(self) -> None:
        self.bubbles = []
        self.remove_children()

    async def finalize_pending(self) -> None:
        """Finish rendering any bubble that was still being revealed."""
        for bubble in self.bubbles:
            if not bubble.final and bubble.is_mounted:
                await bubble.finalize_content()

    def is_at_bottom(self) -> bool:
        return self.max_scroll_y - self.scroll_y <= BOTTOM_THRESHOLD
