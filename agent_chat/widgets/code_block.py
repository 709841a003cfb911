"""Fenced code segment of an assistant reply."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Static

from ..highlight import highlight, to_rich_text
from ..markdown import DEFAULT_CODE_LANGUAGE


class CodeBlock(Vertical):
    """Highlighted code under a one-line header with the language and a copy button."""

    DEFAULT_CSS = """
    CodeBlock {
        height: auto;
        margin: 1 0;
        background: #1e1e1e;
        border-left: thick $accent;
    }
    CodeBlock .code-header {
        height: 1;
        background: $panel;
    }
    CodeBlock .code-caption {
        width: 1fr;
        padding: 0 1;
        color: $text-muted;
    }
    CodeBlock .code-copy {
        width: auto;
        min-width: 6;
        height: 1;
        padding: 0 1;
        border: none;
        background: $panel;
    }
    CodeBlock .code-copy:hover {
        background: $accent;
    }
    CodeBlock .code-text {
        height: auto;
        padding: 0 1;
    }
    """

    class CopyRequested(Message):
        def __init__(self, code: str) -> None:
            super().__init__()
            self.code = code

    def __init__(self, code: str, lang: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.code = code
        self.lang = lang or DEFAULT_CODE_LANGUAGE

    @property
    def caption(self) -> str:
        lines = self.code.count("\n") + 1 if self.code else 0
        return f"{self.lang} · {lines} line{'s' if lines != 1 else ''}"

    def compose(self) -> ComposeResult:
        with Horizontal(classes="code-header"):
            yield Static(self.caption, classes="code-caption", markup=False)
            yield Button("copy", classes="code-copy")
        yield Static(to_rich_text(highlight(self.code, self.lang)), classes="code-text")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.has_class("code-copy"):
            event.stop()
            self.post_message(self.CopyRequested(self.code))
