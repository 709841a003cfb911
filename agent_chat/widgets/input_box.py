"""Composer: message field, image and send buttons, and the slash command menu."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input, OptionList

PLACEHOLDER = "Type your message... (/ for commands, drop an image path)"


class InputBox(Vertical):
    """Bottom composer.

    Typing ``/`` opens a menu of the matching commands; choosing one fills the
    field with the command name so arguments can follow.
    """

    DEFAULT_CSS = """
    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }
    InputBox #input_row {
        height: auto;
    }
    InputBox #message_input {
        width: 1fr;
    }
    InputBox Button {
        margin-left: 1;
        min-width: 10;
    }
    InputBox #slash_menu {
        max-height: 8;
        width: 60;
        margin-top: 1;
    }
    InputBox #slash_menu.hidden {
        display: none;
    }
    """

    class AttachRequested(Message):
        """The image button was clicked."""

    def __init__(self, commands: Sequence[tuple[str, str]] = (), **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.commands = tuple(commands)

    def compose(self) -> ComposeResult:
        with Horizontal(id="input_row"):
            yield Input(placeholder=PLACEHOLDER, id="message_input")
            yield Button("Image", id="attach_button", variant="default")
            yield Button("Send", id="send_button", variant="success")
        yield OptionList(id="slash_menu", classes="hidden")

    @property
    def field(self) -> Input:
        return self.query_one("#message_input", Input)

    def set_busy(self, busy: bool) -> None:
        for widget in self.query("Input, Button"):
            widget.disabled = busy

    def clear(self) -> None:
        self.field.value = ""
        self.hide_menu()

    def matching_commands(self, typed: str) -> list[str]:
        head = typed.lower().split(" ", 1)[0]
        return [
            f"{usage}  {summary}"
            for usage, summary in self.commands
            if usage.lower().startswith(head)
        ]

    def show_menu(self, typed: str) -> None:
        menu = self.query_one("#slash_menu", OptionList)
        menu.clear_options()
        menu.add_options([Text(line) for line in self.matching_commands(typed)])
        menu.set_class(menu.option_count == 0, "hidden")

    def hide_menu(self) -> None:
        menu = self.query_one("#slash_menu", OptionList)
        menu.add_class("hidden")
        menu.clear_options()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "message_input":
            return
        if event.value.startswith("/"):
            self.show_menu(event.value)
        else:
            self.hide_menu()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id != "slash_menu":
            return
        event.stop()
        field = self.field
        field.value = str(event.option.prompt).split(" ", 1)[0] + " "
        field.cursor_position = len(field.value)
        self.hide_menu()
        field.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "attach_button":
            event.stop()
            self.post_message(self.AttachRequested())
