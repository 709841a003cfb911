"""Modal dialogs: info text, option pickers, and a one-line text prompt."""

from __future__ import annotations

from typing import Generic, TypeVar

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, OptionList, Static

ResultT = TypeVar("ResultT")


class DialogScreen(ModalScreen[ResultT], Generic[ResultT]):
    """Centered bordered dialog that dismisses with ``None`` on Escape."""

    DEFAULT_CSS = """
    DialogScreen {
        align: center middle;
    }
    DialogScreen .dialog {
        width: 64;
        height: auto;
        max-height: 28;
        padding: 1 2;
        border: round $panel;
        background: $surface;
    }
    DialogScreen .dialog-title {
        padding-bottom: 1;
        text-style: bold;
    }
    DialogScreen .dialog-hint {
        padding-top: 1;
        color: $text-muted;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(self, title: str = "") -> None:
        super().__init__()
        self.dialog_title = title

    def title_widget(self) -> Static | None:
        if not self.dialog_title:
            return None
        return Static(self.dialog_title, classes="dialog-title", markup=False)

    def action_cancel(self) -> None:
        self.dismiss(None)


class InfoScreen(DialogScreen[None]):
    """Show a block of plain text until dismissed."""

    DEFAULT_CSS = """
    InfoScreen .dialog {
        width: 88;
    }
    InfoScreen #info-actions {
        height: 3;
        align: right middle;
    }
    """

    BINDINGS = [Binding("enter", "cancel", "Close", show=False)]

    def __init__(self, text: str, title: str = "") -> None:
        super().__init__(title)
        self.text = text

    def compose(self) -> ComposeResult:
        with Container(classes="dialog"):
            heading = self.title_widget()
            if heading is not None:
                yield heading
            yield Static(self.text, id="info-body", markup=False)
            with Horizontal(id="info-actions"):
                yield Button("OK", id="info-ok", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "info-ok":
            event.stop()
            self.dismiss(None)


class SimplePickerScreen(DialogScreen["str | None"]):
    """Pick one of ``(label, value)`` options; dismisses with the value."""

    def __init__(
        self,
        title: str,
        options: list[tuple[str, str]],
        active: str | None = None,
    ) -> None:
        super().__init__(title)
        self.options = options
        self.active = active

    def compose(self) -> ComposeResult:
        with Container(classes="dialog"):
            heading = self.title_widget()
            if heading is not None:
                yield heading
            yield OptionList(
                *(Text(label) for label, _ in self.options), id="picker-options"
            )
            yield Static("Enter to select, Esc to cancel", classes="dialog-hint")

    def on_mount(self) -> None:
        option_list = self.query_one("#picker-options", OptionList)
        values = [value for _, value in self.options]
        if self.active in values:
            option_list.highlighted = values.index(self.active)
        option_list.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        if 0 <= event.option_index < len(self.options):
            self.dismiss(self.options[event.option_index][1])


class TextPromptScreen(DialogScreen["str | None"]):
    """Ask for one line of text; an empty answer dismisses with ``""``."""

    def __init__(self, title: str, placeholder: str = "") -> None:
        super().__init__(title)
        self.placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Container(classes="dialog"):
            heading = self.title_widget()
            if heading is not None:
                yield heading
            yield Input(placeholder=self.placeholder, id="prompt-input")
            yield Static("Enter to confirm, Esc to cancel", classes="dialog-hint")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.dismiss(event.value.strip())
