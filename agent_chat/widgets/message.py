"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from ..highlight import highlight, to_rich_text
from ..markdown import BOLD, CODE_BLOCK, HEADER, INLINE_CODE, Segment, render
from ..session import Message, Role
from .code_block import CodeBlock

INLINE_CODE_STYLE = "#ce9178 on #2d2d2d"
HEADER_STYLES = {2: "bold underline", 3: "bold"}


def prose_text(segments: list[Segment]) -> Text:
    """Build one styled Text from prose segments.

    Code blocks are highlighted inline, which is how a reply looks while it
    is still being revealed.
    """
    text = Text()
    for segment in segments:
        if segment.kind == BOLD:
            text.append(segment.text, style="bold")
        elif segment.kind == INLINE_CODE:
            text.append(segment.text, style=INLINE_CODE_STYLE)
        elif segment.kind == HEADER:
            text.append(segment.text, style=HEADER_STYLES.get(segment.level, "bold"))
        elif segment.kind == CODE_BLOCK:
            text.append("\n")
            text.append_text(to_rich_text(highlight(segment.text, segment.language)))
            text.append("\n")
        else:
            text.append(segment.text)
    return text


def group_segments(segments: list[Segment]) -> list[list[Segment]]:
    """Split segments into runs of prose, with each code block on its own."""
    groups: list[list[Segment]] = []
    current: list[Segment] = []
    for segment in segments:
        if segment.kind == CODE_BLOCK:
            if current:
                groups.append(current)
                current = []
            groups.append([segment])
        else:
            current.append(segment)
    if current:
        groups.append(current)
    return groups


class MessageBubble(Vertical):
    """Render a single chat message with its role header and formatted body."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
        text-style: bold;
    }
    MessageBubble > #image-block {
        color: $text-muted;
        padding: 0 1;
        border-left: solid $accent;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    MessageBubble > .prose-segment {
        height: auto;
        padding: 0;
    }
    """

    def __init__(
        self,
        message: Message,
        timestamp: str = "",
        final: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.message = message
        self.timestamp = timestamp
        self.final = final
        self.add_class(f"role-{message.role.value}")
        self._content_widget: Static | None = None
        self._segment_widgets: list[Static | CodeBlock] = []

    @property
    def role_prefix(self) -> str:
        return "You" if self.message.role is Role.USER else "Assistant"

    @property
    def message_content(self) -> str:
        return self.message.content

    def _compose_header(self) -> str:
        if self.timestamp:
            return f"{self.role_prefix}  {self.timestamp}"
        return self.role_prefix

    def compose(self) -> ComposeResult:
        yield Static(self._compose_header(), id="header-block")
        image_label = self.image_label()
        if image_label:
            yield Static(image_label, id="image-block", markup=False)
        self._content_widget = Static("", id="content-block")
        yield self._content_widget

    def image_label(self) -> str:
        image = self.message.image
        if image is None:
            return ""
        return f"[image: {image.describe()}]"

    async def on_mount(self) -> None:
        if self.final:
            await self.finalize_content()
        else:
            self._refresh_content()

    def _refresh_content(self) -> None:
        if self._content_widget is None:
            return
        self._content_widget.update(prose_text(render(self.message.content)))

    def refresh_content(self) -> None:
        """Re-render after the underlying message content changed."""
        self._refresh_content()

    async def finalize_content(self) -> None:
        """Replace the single text block with prose and code block widgets."""
        for widget in self._segment_widgets:
            await widget.remove()
        self._segment_widgets = []

        groups = group_segments(render(self.message.content))
        if not any(group[0].kind == CODE_BLOCK for group in groups):
            self._refresh_content()
            self.final = True
            return

        if self._content_widget is not None:
            self._content_widget.display = False
        for group in groups:
            if group[0].kind == CODE_BLOCK:
                segment = group[0]
                widget: Static | CodeBlock = CodeBlock(segment.text, segment.language)
            else:
                widget = Static(prose_text(group), classes="prose-segment")
            self._segment_widgets.append(widget)
            await self.mount(widget)
        self.final = True

    def on_code_block_copy_requested(self, event: CodeBlock.CopyRequested) -> None:
        event.stop()
        app = self.app
        if hasattr(app, "copy_to_clipboard"):
            app.copy_to_clipboard(event.code)
            app.sub_title = "Code copied to clipboard."
        else:
            app.sub_title = "Clipboard unavailable."
