"""Send orchestration between the session, the dispatcher, and a view."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from .client import BackendClient
from .dispatcher import ModeDispatcher, resolve_route
from .exceptions import BackendError
from .images import PendingImage
from .models import AgentStats, ModelInfo, Workspace
from .reveal import RevealEngine
from .session import CLEARED_GREETING, ChatSession, Message, Role
from .state import ConversationState, StateManager
from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)

DEFAULT_GREETING = (
    "Hello! I'm your AI Agent. Select a workspace and tools to get started!"
)
BUSY_HINT = "Busy. Wait for the current reply to finish."
ANNOTATED_IMAGE_NAME = "annotated.png"
IMAGE_NOT_SENT_HINT = (
    "Images are only sent in Object Detection or OCR mode; sent text only."
)


class ConversationView(Protocol):
    """Callbacks the controller uses to keep a display in sync."""

    def message_appended(self, index: int, message: Message) -> None: ...

    def message_updated(self, index: int, message: Message) -> None: ...

    def conversation_reset(self, messages: list[Message]) -> None: ...

    def is_at_bottom(self) -> bool: ...

    def scroll_to_bottom(self) -> None: ...

    def show_status(self, text: str) -> None: ...

    def busy_changed(self, busy: bool) -> None: ...


class NullView:
    """A view that ignores every notification."""

    def message_appended(self, index: int, message: Message) -> None:
        return None

    def message_updated(self, index: int, message: Message) -> None:
        return None

    def conversation_reset(self, messages: list[Message]) -> None:
        return None

    def is_at_bottom(self) -> bool:
        return True

    def scroll_to_bottom(self) -> None:
        return None

    def show_status(self, text: str) -> None:
        return None

    def busy_changed(self, busy: bool) -> None:
        return None


class ChatController:
    def __init__(
        self,
        session: ChatSession,
        dispatcher: ModeDispatcher,
        reveal_engine: RevealEngine | None = None,
        state_manager: StateManager | None = None,
        task_manager: TaskManager | None = None,
        view: ConversationView | None = None,
    ) -> None:
        self.session = session
        self.dispatcher = dispatcher
        self.reveal_engine = reveal_engine or RevealEngine()
        self.state = state_manager or StateManager()
        self.tasks = task_manager or TaskManager()
        self.view: ConversationView = view or NullView()
        self.models: list[ModelInfo] = []

    @property
    def client(self) -> BackendClient:
        return self.dispatcher.client

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    async def _transition(self, new_state: ConversationState) -> None:
        await self.state.transition_to(new_state)
        LOGGER.info(
            "app.state.transition",
            extra={"event": "app.state.transition", "to_state": new_state.value},
        )

    def _append(self, message: Message) -> int:
        index = self.session.append(message)
        self.view.message_appended(index, message)
        return index

    async def submit(self, text: str) -> bool:
        """Send ``text`` (and any staged image) and display the reply.

        Returns False when the send was refused before any request was made.
        """
        hint = self.session.validate_send(text)
        if hint is not None:
            self.view.show_status(hint)
            return False

        if not await self.state.transition_if(
            ConversationState.IDLE, ConversationState.LOADING
        ):
            self.view.show_status(BUSY_HINT)
            return False
        LOGGER.info(
            "app.state.transition",
            extra={
                "event": "app.state.transition",
                "from_state": "IDLE",
                "to_state": "LOADING",
            },
        )
        self.view.busy_changed(True)

        try:
            image = self.session.take_image()
            self._append(Message(Role.USER, text.strip(), image))
            self.view.scroll_to_bottom()
            if image is not None and not resolve_route(self.session, image).needs_image:
                self.view.show_status(IMAGE_NOT_SENT_HINT)

            version = self.session.version
            dispatch_task = asyncio.create_task(
                self.dispatcher.dispatch(self.session, text, image)
            )
            self.tasks.add(dispatch_task, name="dispatch")
            try:
                result = await dispatch_task
            finally:
                self.tasks.discard("dispatch", dispatch_task)

            if self.session.version != version:
                return True

            if not result.reveal:
                reply_image = (
                    PendingImage.from_data_url(result.image, ANNOTATED_IMAGE_NAME)
                    if result.image
                    else None
                )
                self._append(Message(Role.ASSISTANT, result.text, reply_image))
                self.view.scroll_to_bottom()
                return True

            index = self._append(Message(Role.ASSISTANT, ""))
            await self._transition(ConversationState.REVEALING)
            reveal_task = asyncio.create_task(
                self.reveal_engine.reveal(self.session, index, result.text, self.view)
            )
            self.tasks.add(reveal_task, name="reveal")
            try:
                await reveal_task
            finally:
                self.tasks.discard("reveal", reveal_task)
            return True
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            LOGGER.info(
                "dispatch.cancelled", extra={"event": "dispatch.cancelled"}
            )
            return True
        finally:
            if self.state.current != ConversationState.CANCELLING:
                await self._transition(ConversationState.IDLE)
            self.view.busy_changed(False)

    async def reset(self) -> None:
        """Cancel in-flight work and start over with a fresh greeting."""
        if self.state.is_busy:
            await self._transition(ConversationState.CANCELLING)
        await self.tasks.cancel("dispatch")
        await self.tasks.cancel("reveal")
        self.session.reset(CLEARED_GREETING)
        self.view.conversation_reset(list(self.session.messages))
        await self._transition(ConversationState.IDLE)

    async def interrupt(self) -> bool:
        """Stop the in-flight request or reveal, keeping the conversation."""
        if not self.state.is_busy:
            self.view.show_status("No reply to interrupt.")
            return False
        await self._transition(ConversationState.CANCELLING)
        await self.tasks.cancel("dispatch")
        await self.tasks.cancel("reveal")
        await self._transition(ConversationState.IDLE)
        self.view.show_status("Request cancelled.")
        return True

    def last_image(self) -> PendingImage | None:
        """Return the most recent image shown in the conversation."""
        for message in reversed(self.session.messages):
            if message.image is not None:
                return message.image
        return None

    async def shutdown(self) -> None:
        await self._transition(ConversationState.CANCELLING)
        await self.tasks.cancel_all()
        await self._transition(ConversationState.IDLE)

    # -- catalogs -----------------------------------------------------------

    async def refresh_catalogs(self) -> None:
        """Load models, workspaces, and agent tools; each failure is independent."""
        try:
            self.models = await self.client.list_models()
        except BackendError as exc:
            self._catalog_failed("models", exc)
        else:
            known = {model.id for model in self.models}
            if self.models and self.session.model not in known:
                LOGGER.info(
                    "catalog.model_not_listed",
                    extra={
                        "event": "catalog.model_not_listed",
                        "model": self.session.model,
                    },
                )

        try:
            self.session.set_workspaces(await self.client.list_workspaces())
        except BackendError as exc:
            self._catalog_failed("workspaces", exc)

        try:
            self.session.extend_tool_catalog(await self.client.list_agent_tools())
        except BackendError as exc:
            self._catalog_failed("tools", exc)

    def _catalog_failed(self, catalog: str, exc: BackendError) -> None:
        LOGGER.warning(
            "catalog.load_failed",
            extra={"event": "catalog.load_failed", "catalog": catalog, "error": str(exc)},
        )
        self.view.show_status(f"Could not load {catalog}: {exc}")

    async def create_workspace(self, name: str) -> Workspace | None:
        if not name.strip():
            self.view.show_status("Workspace name must not be empty.")
            return None
        try:
            workspace = await self.client.create_workspace(name)
        except BackendError as exc:
            LOGGER.warning(
                "workspace.create_failed",
                extra={"event": "workspace.create_failed", "error": str(exc)},
            )
            self.view.show_status("Failed to create workspace")
            return None
        self.session.add_workspace(workspace)
        self.view.show_status(f"Workspace created: {workspace.label}")
        return workspace

    async def delete_workspace(self, workspace_id: str) -> bool:
        try:
            await self.client.delete_workspace(workspace_id)
        except BackendError as exc:
            LOGGER.warning(
                "workspace.delete_failed",
                extra={"event": "workspace.delete_failed", "error": str(exc)},
            )
            self.view.show_status("Failed to delete workspace")
            return False
        self.session.remove_workspace(workspace_id)
        self.view.show_status("Workspace deleted.")
        return True

    async def fetch_agent_stats(self) -> AgentStats | None:
        try:
            return await self.client.agent_stats()
        except BackendError as exc:
            LOGGER.warning(
                "agent.stats_failed",
                extra={"event": "agent.stats_failed", "error": str(exc)},
            )
            self.view.show_status(f"Could not load agent stats: {exc}")
            return None
