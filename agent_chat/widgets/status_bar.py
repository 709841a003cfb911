"""One-line status strip under the composer."""

from __future__ import annotations

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

SEPARATOR = "  |  "

CONNECTION_STYLES = {
    "online": "bold green",
    "offline": "bold red",
    "checking": "yellow",
}


def status_segments(
    *,
    connection_state: str,
    mode_label: str,
    model: str,
    message_count: int,
    agent_mode: bool = False,
    workspace: str = "",
    tool_count: int = 0,
    image: str = "",
) -> list[str]:
    """Return the visible segments, left to right.

    Workspace and tool counts only matter to the agent backend, and the image
    segment is shown only while something is staged.
    """
    segments = [connection_state, f"Mode: {mode_label}", f"Model: {model or '-'}"]
    if agent_mode:
        segments.append(f"Workspace: {workspace or 'none'}")
        segments.append(f"Tools: {tool_count}")
    if image:
        segments.append(f"Image: {image}")
    segments.append(f"Messages: {message_count}")
    return segments


class StatusBar(Static):
    """Clicking anywhere on the bar asks the app for the model picker."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        color: $text-muted;
    }
    """

    class ModelPickerRequested(Message):
        pass

    def __init__(self, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__("checking", **kwargs)

    def set_status(self, **fields) -> None:  # type: ignore[no-untyped-def]
        head, *rest = status_segments(**fields)
        line = Text(head, style=CONNECTION_STYLES.get(head, ""))
        for segment in rest:
            line.append(SEPARATOR)
            line.append(segment)
        self.update(line)

    def on_click(self, event: events.Click) -> None:
        event.stop()
        self.post_message(self.ModelPickerRequested())
