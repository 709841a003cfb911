"""Main Textual application for the multi-mode agent chat."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
import logging
from pathlib import Path
import sys
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.css.query import NoMatches
from textual.events import Paste
from textual.widgets import Button, Footer, Header, Input

from .client import BackendClient
from .config import backend_settings, load_config, modes_settings
from .controller import ChatController
from .dispatcher import ModeDispatcher
from .exceptions import ImageValidationError
from .images import decode_data_url, extract_paths_from_paste, is_image_path, load_image
from .logging_utils import configure_logging
from .reveal import RevealEngine
from .screens import InfoScreen, SimplePickerScreen, TextPromptScreen
from .session import ChatSession, Message, Mode
from .state import StateManager
from .task_manager import TaskManager
from .widgets.conversation import ConversationView
from .widgets.input_box import InputBox
from .widgets.status_bar import StatusBar

LOGGER = logging.getLogger(__name__)

_SlashCommand = Callable[[str], Awaitable[None]]


class _AppView:
    """Adapts controller notifications onto the mounted widgets."""

    def __init__(self, app: AgentChatApp) -> None:
        self.app = app

    def message_appended(self, index: int, message: Message) -> None:
        final = bool(message.content)
        self.app.conversation.add_message(
            message, timestamp=self.app.timestamp(), final=final
        )
        self.app.update_status_bar()

    def message_updated(self, index: int, message: Message) -> None:
        bubble = self.app.conversation.bubble_at(index)
        if bubble is not None:
            bubble.refresh_content()

    def conversation_reset(self, messages: list[Message]) -> None:
        conversation = self.app.conversation
        conversation.clear_messages()
        for message in messages:
            conversation.add_message(message, timestamp=self.app.timestamp())
        self.app.update_status_bar()

    def is_at_bottom(self) -> bool:
        return self.app.conversation.is_at_bottom()

    def scroll_to_bottom(self) -> None:
        self.app.conversation.scroll_end(animate=False)

    def show_status(self, text: str) -> None:
        self.app.sub_title = text

    def busy_changed(self, busy: bool) -> None:
        self.app.query_one(InputBox).set_busy(busy)
        if busy:
            self.app.sub_title = "Thinking..."
        else:
            self.app.query_one("#message_input", Input).focus()
        self.app.update_status_bar()


class AgentChatApp(App[None]):
    """Terminal chat client for the chat, agent, detection, and OCR backends."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
        background: $background;
    }

    Header {
        border-bottom: solid $panel;
        background: $surface;
    }

    Footer {
        border-top: solid $panel;
        background: $surface;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    #status_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .role-user {
        align-horizontal: right;
        background: $primary;
    }

    .role-assistant {
        align-horizontal: left;
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "send_message": "Send",
        "new_conversation": "Clear",
        "quit": "Quit",
        "scroll_up": "Scroll Up",
        "scroll_down": "Scroll Down",
        "command_palette": "Help",
        "toggle_mode_picker": "Mode",
        "toggle_model_picker": "Model",
        "toggle_workspace_picker": "Workspace",
        "attach_image": "Image",
        "interrupt": "Interrupt",
    }

    SLASH_COMMANDS: tuple[tuple[str, str], ...] = (
        ("/mode <name>", "Switch mode: chat, agent, detect, ocr"),
        ("/model <id>", "Switch active model"),
        ("/workspace [id]", "Select the agent workspace"),
        ("/workspace-new <name>", "Create a workspace"),
        ("/workspace-delete [id]", "Delete a workspace"),
        ("/tool [id]", "Toggle an agent tool"),
        ("/image <path>", "Stage an image for the next send"),
        ("/noimage", "Remove the staged image"),
        ("/save-image <path>", "Save the most recent image"),
        ("/stats", "Show agent service stats"),
        ("/clear", "Start over"),
        ("/help", "Show help"),
    )

    def __init__(
        self,
        config_path: Path | None = None,
        client: BackendClient | None = None,
    ) -> None:
        self.config = load_config(config_path)
        self.window_title = str(self.config["app"]["title"])
        configure_logging(self.config["logging"])
        LOGGER.info(
            "app.python",
            extra={
                "event": "app.python",
                "executable": sys.executable,
                "version": sys.version.split()[0],
            },
        )

        backend = backend_settings(self.config)
        ui_cfg = self.config["ui"]
        self.client = client or BackendClient(
            backend.base_url,
            api_key=backend.resolved_api_key(),
            timeout=backend.timeout,
        )
        self.session = ChatSession(
            model=backend.model,
            greeting=str(ui_cfg["greeting"]),
            mode=Mode.parse(str(self.config["modes"]["default_mode"])),
        )
        self.controller = ChatController(
            self.session,
            ModeDispatcher(
                self.client,
                modes_settings(self.config),
                max_tokens=backend.max_tokens,
            ),
            RevealEngine(
                chunk_size=int(ui_cfg["reveal_chunk_size"]),
                interval_seconds=float(ui_cfg["reveal_interval_seconds"]),
            ),
            StateManager(),
            TaskManager(),
            _AppView(self),
        )
        self._connection_state = "checking"
        self._binding_specs = self._binding_specs_from_config(self.config)
        self._slash_registry = self._build_slash_registry()
        super().__init__()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name, description in cls.DEFAULT_ACTION_DESCRIPTIONS.items():
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=description,
                        show=True,
                    )
                )
        return bindings

    # -- widgets ------------------------------------------------------------

    @property
    def conversation(self) -> ConversationView:
        return self.query_one(ConversationView)

    def timestamp(self) -> str:
        if not self.config["ui"].get("show_timestamps", True):
            return ""
        return datetime.now().strftime("%H:%M")

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="app-root"):
            yield ConversationView(id="conversation")
            yield InputBox(self.SLASH_COMMANDS)
            yield StatusBar(id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.title = self.window_title
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        conversation = self.conversation
        for message in self.session.messages:
            conversation.add_message(message, timestamp=self.timestamp())
        self.query_one("#message_input", Input).focus()
        self.update_status_bar()
        self.sub_title = f"Mode: {self.session.mode.label}"
        self.controller.tasks.add(
            asyncio.create_task(self._startup_checks()), name="startup"
        )

    async def _startup_checks(self) -> None:
        connected = await self.client.check_connection()
        self._connection_state = "online" if connected else "offline"
        LOGGER.info(
            "app.connection.state",
            extra={
                "event": "app.connection.state",
                "connection_state": self._connection_state,
            },
        )
        if connected:
            await self.controller.refresh_catalogs()
        else:
            self.sub_title = f"Backend unreachable at {self.client.base_url}"
        self.update_status_bar()

    def update_status_bar(self) -> None:
        try:
            status = self.query_one("#status_bar", StatusBar)
        except NoMatches:
            return
        session = self.session
        workspace = session.selected_workspace
        status.set_status(
            connection_state=self._connection_state,
            mode_label=session.mode.label,
            model=session.model,
            message_count=len(session.messages),
            agent_mode=session.mode is Mode.AGENT,
            workspace=workspace.label if workspace else "",
            tool_count=len(session.selected_tools),
            image=session.pending_image.describe() if session.pending_image else "",
        )

    # -- sending ------------------------------------------------------------

    async def action_send_message(self) -> None:
        await self.send_user_message()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "message_input":
            await self.send_user_message()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send_button":
            await self.send_user_message()

    async def send_user_message(self) -> None:
        input_widget = self.query_one("#message_input", Input)
        raw_text = input_widget.value
        if raw_text.strip().startswith("/"):
            if await self._dispatch_slash_command(raw_text.strip()):
                return

        hint = self.session.validate_send(raw_text)
        if hint is not None:
            self.sub_title = hint
            return
        if self.controller.is_busy:
            self.sub_title = "Busy. Wait for the current reply to finish."
            return
        self.query_one(InputBox).clear()
        self.controller.tasks.add(asyncio.create_task(self._submit(raw_text)))

    async def _submit(self, text: str) -> None:
        await self.controller.submit(text)
        await self.conversation.finalize_pending()
        if not self.controller.is_busy:
            self.sub_title = f"Mode: {self.session.mode.label}"
        self.update_status_bar()

    # -- slash commands -----------------------------------------------------

    def _build_slash_registry(self) -> dict[str, _SlashCommand]:
        async def _handle_mode(args: str) -> None:
            if not args.strip():
                await self.action_toggle_mode_picker()
                return
            try:
                self._set_mode(Mode.parse(args))
            except ValueError as exc:
                self.sub_title = str(exc)

        async def _handle_model(args: str) -> None:
            if args.strip():
                self._set_model(args.strip())
            else:
                await self.action_toggle_model_picker()

        async def _handle_workspace(args: str) -> None:
            if not args.strip():
                await self.action_toggle_workspace_picker()
            elif not self.session.select_workspace(args.strip()):
                self.sub_title = f"Unknown workspace: {args.strip()}"
            else:
                self._after_workspace_change()

        async def _handle_workspace_new(args: str) -> None:
            if args.strip():
                await self._create_workspace(args.strip())
            else:
                self.push_screen(
                    TextPromptScreen("New workspace", placeholder="Workspace name"),
                    callback=self._on_workspace_name_entered,
                )

        async def _handle_workspace_delete(args: str) -> None:
            workspace_id = args.strip() or self.session.selected_workspace_id
            if not workspace_id:
                self.sub_title = "No workspace selected."
                return
            await self.controller.delete_workspace(workspace_id)
            self.update_status_bar()

        async def _handle_tool(args: str) -> None:
            if not args.strip():
                self._open_tool_picker()
                return
            self._toggle_tool(args.strip())

        async def _handle_image(args: str) -> None:
            if not args.strip():
                await self.action_attach_image()
                return
            self._stage_image_path(args.strip())

        async def _handle_noimage(_args: str) -> None:
            self.session.clear_image()
            self.sub_title = "Image removed."
            self.update_status_bar()

        async def _handle_save_image(args: str) -> None:
            await self._save_last_image(args.strip())

        async def _handle_stats(_args: str) -> None:
            stats = await self.controller.fetch_agent_stats()
            if stats is not None:
                self.push_screen(InfoScreen(stats.summary(), title="Agent stats"))

        async def _handle_clear(_args: str) -> None:
            await self.action_new_conversation()

        async def _handle_help(_args: str) -> None:
            await self.action_command_palette()

        return {
            "/mode": _handle_mode,
            "/model": _handle_model,
            "/workspace": _handle_workspace,
            "/workspace-new": _handle_workspace_new,
            "/workspace-delete": _handle_workspace_delete,
            "/tool": _handle_tool,
            "/image": _handle_image,
            "/noimage": _handle_noimage,
            "/save-image": _handle_save_image,
            "/stats": _handle_stats,
            "/clear": _handle_clear,
            "/help": _handle_help,
        }

    def register_slash_command(self, prefix: str, handler: _SlashCommand) -> None:
        """Register a custom slash command handler under ``prefix`` (e.g. ``"/ping"``)."""
        self._slash_registry[prefix.lower()] = handler

    async def _dispatch_slash_command(self, raw_text: str) -> bool:
        """Run a slash command. Returns True if one matched."""
        parts = raw_text.split(maxsplit=1)
        prefix = parts[0].lower()
        args = parts[1] if len(parts) == 2 else ""
        handler = self._slash_registry.get(prefix)
        if handler is None:
            return False
        self.query_one(InputBox).clear()
        await handler(args)
        return True

    # -- mode / model / workspace / tools -----------------------------------

    def _set_mode(self, mode: Mode) -> None:
        self.session.mode = mode
        LOGGER.info("app.mode.changed", extra={"event": "app.mode.changed", "mode": mode.value})
        hint = f"Mode: {mode.label}"
        if mode.needs_image and self.session.pending_image is None:
            hint += "  |  attach an image with /image <path>"
        elif mode is Mode.AGENT and not self.session.selected_workspace_id:
            hint += "  |  select a workspace with /workspace"
        self.sub_title = hint
        self.update_status_bar()

    def _set_model(self, model_id: str) -> None:
        known = [model.id for model in self.controller.models]
        if known and model_id not in known:
            self.sub_title = f"Unknown model: {model_id}"
            return
        self.session.model = model_id
        self.sub_title = f"Model: {model_id}"
        self.update_status_bar()

    def _after_workspace_change(self) -> None:
        workspace = self.session.selected_workspace
        self.sub_title = f"Workspace: {workspace.label}" if workspace else "No workspace"
        self.update_status_bar()

    async def _create_workspace(self, name: str) -> None:
        await self.controller.create_workspace(name)
        self.update_status_bar()

    def _on_workspace_name_entered(self, name: str | None) -> None:
        if not name:
            return
        self.controller.tasks.add(asyncio.create_task(self._create_workspace(name)))

    def _toggle_tool(self, tool_id: str) -> None:
        try:
            enabled = self.session.toggle_tool(tool_id)
        except KeyError:
            self.sub_title = f"Unknown tool: {tool_id}"
            return
        label = self.session.tool_catalog[tool_id]
        self.sub_title = f"{label} {'enabled' if enabled else 'disabled'}"
        self.update_status_bar()

    def _open_tool_picker(self) -> None:
        options = [
            (f"[{'x' if tool_id in self.session.selected_tools else ' '}] {label}", tool_id)
            for tool_id, label in self.session.tool_catalog.items()
        ]
        self.push_screen(
            SimplePickerScreen("Agent tools", options),
            callback=lambda tool_id: self._toggle_tool(tool_id) if tool_id else None,
        )

    async def action_toggle_mode_picker(self) -> None:
        options = [(mode.label, mode.value) for mode in Mode]
        self.push_screen(
            SimplePickerScreen("Mode", options, active=self.session.mode.value),
            callback=lambda value: self._set_mode(Mode.parse(value)) if value else None,
        )

    async def action_toggle_model_picker(self) -> None:
        options = [(model.label, model.id) for model in self.controller.models]
        if not options:
            options = [(self.session.model, self.session.model)]
        self.push_screen(
            SimplePickerScreen("Model", options, active=self.session.model),
            callback=lambda value: self._set_model(value) if value else None,
        )

    async def action_toggle_workspace_picker(self) -> None:
        if not self.session.workspaces:
            self.sub_title = "No workspaces. Create one with /workspace-new <name>."
            return
        options = [(workspace.label, workspace.id) for workspace in self.session.workspaces]

        def _selected(value: str | None) -> None:
            if value and self.session.select_workspace(value):
                self._after_workspace_change()

        self.push_screen(
            SimplePickerScreen(
                "Workspace", options, active=self.session.selected_workspace_id
            ),
            callback=_selected,
        )

    async def on_status_bar_model_picker_requested(
        self, _message: StatusBar.ModelPickerRequested
    ) -> None:
        await self.action_toggle_model_picker()

    # -- images -------------------------------------------------------------

    def _stage_image_path(self, path: str) -> bool:
        try:
            image = load_image(path)
        except ImageValidationError as exc:
            self.sub_title = str(exc)
            return False
        self.session.stage_image(image)
        self.sub_title = f"Image attached: {image.describe()}"
        self.update_status_bar()
        return True

    async def action_attach_image(self) -> None:
        self.push_screen(
            TextPromptScreen("Attach image", placeholder="Path to jpeg/png/webp/bmp"),
            callback=lambda path: self._stage_image_path(path) if path else None,
        )

    async def on_input_box_attach_requested(
        self, _message: InputBox.AttachRequested
    ) -> None:
        await self.action_attach_image()

    def on_paste(self, event: Paste) -> None:
        """Stage a dropped image path instead of pasting it as text."""
        if not event.text:
            return
        for path in extract_paths_from_paste(event.text):
            if not is_image_path(path):
                continue
            if not Path(path).expanduser().is_file():
                continue
            if self._stage_image_path(path):
                event.stop()
                return

    async def _save_last_image(self, destination: str) -> None:
        if not destination:
            self.sub_title = "Usage: /save-image <path>"
            return
        image = self.controller.last_image()
        if image is None:
            self.sub_title = "No image in the conversation."
            return
        target = Path(destination).expanduser()
        try:
            data = decode_data_url(image.data_url)
            await asyncio.to_thread(target.write_bytes, data)
        except (ImageValidationError, OSError) as exc:
            LOGGER.warning(
                "app.image.save_failed",
                extra={"event": "app.image.save_failed", "error": str(exc)},
            )
            self.sub_title = f"Could not save image: {exc}"
            return
        self.sub_title = f"Saved {image.name} to {target}"

    # -- misc actions -------------------------------------------------------

    async def action_command_palette(self) -> None:
        lines = ["Commands:", ""]
        for command, description in self.SLASH_COMMANDS:
            lines.append(f"{command} - {description}")
        lines.append("")
        lines.append("Keybind actions:")
        for binding in self._binding_specs:
            lines.append(f"{binding.key.upper()} - {binding.description}")
        self.push_screen(InfoScreen("\n".join(lines), title="Help"))

    async def action_new_conversation(self) -> None:
        await self.controller.reset()
        self.sub_title = f"Mode: {self.session.mode.label}"

    async def action_interrupt(self) -> None:
        await self.controller.interrupt()
        await self.conversation.finalize_pending()

    def action_scroll_up(self) -> None:
        self.conversation.scroll_relative(y=-10, animate=False)

    def action_scroll_down(self) -> None:
        self.conversation.scroll_relative(y=10, animate=False)

    async def action_quit(self) -> None:
        self.exit()

    async def on_unmount(self) -> None:
        await self.controller.shutdown()
        await self.client.aclose()
