"""Conversation session: the single owner of messages, mode, and selections."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
import logging

from .images import PendingImage
from .models import HistoryItem, Workspace

LOGGER = logging.getLogger(__name__)

CLEARED_GREETING = "Chat cleared! How can I help you?"

DEFAULT_TOOL_CATALOG: dict[str, str] = {
    "web_search": "Web Search",
    "code_interpreter": "Code Interpreter",
    "file_browser": "File Browser",
}


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Mode(str, Enum):
    """Which backend endpoint family a send is routed to."""

    CHAT = "chat"
    AGENT = "agent"
    DETECT = "detect"
    OCR = "ocr"

    @classmethod
    def parse(cls, value: str) -> Mode:
        normalized = value.strip().lower()
        aliases = {"detection": cls.DETECT, "text": cls.OCR}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown mode {value!r}. Choose one of: {choices}") from exc

    @property
    def label(self) -> str:
        return {
            Mode.CHAT: "Chat",
            Mode.AGENT: "Agent",
            Mode.DETECT: "Object Detection",
            Mode.OCR: "OCR (Text Extract)",
        }[self]

    @property
    def needs_image(self) -> bool:
        return self in (Mode.DETECT, Mode.OCR)


@dataclass
class Message:
    """A single entry of the visible conversation."""

    role: Role
    content: str
    image: PendingImage | None = None

    def to_api(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ChatSession:
    """Hold all mutable conversation state behind explicit operations.

    Message list mutations are append-only, with one exception: the content
    of an existing message may be replaced in place while it is revealed.
    ``version`` increases on every reset so in-flight work can detect that
    the list it was writing into is gone.
    """

    def __init__(
        self,
        *,
        model: str,
        greeting: str = "",
        mode: Mode = Mode.CHAT,
        tool_catalog: dict[str, str] | None = None,
    ) -> None:
        self.model = model
        self.mode = mode
        self.messages: list[Message] = []
        self.workspaces: list[Workspace] = []
        self.selected_workspace_id: str = ""
        self.tool_catalog: dict[str, str] = dict(tool_catalog or DEFAULT_TOOL_CATALOG)
        self.selected_tools: list[str] = []
        self.history: list[HistoryItem] = []
        self.pending_image: PendingImage | None = None
        self.version = 0
        if greeting:
            self.messages.append(Message(Role.ASSISTANT, greeting))

    # -- messages -----------------------------------------------------------

    def append(self, message: Message) -> int:
        """Append a message and return its index."""
        self.messages.append(message)
        return len(self.messages) - 1

    def update_content(self, index: int, content: str) -> None:
        self.messages[index].content = content

    def reset(self, greeting: str = CLEARED_GREETING) -> None:
        """Replace the conversation with a single greeting and drop agent memory."""
        self.messages = [Message(Role.ASSISTANT, greeting)]
        self.history = []
        self.pending_image = None
        self.version += 1
        LOGGER.info(
            "session.reset", extra={"event": "session.reset", "version": self.version}
        )

    def api_messages(self) -> list[dict[str, str]]:
        """Return the conversation as role/content pairs; images are never included."""
        return [message.to_api() for message in self.messages]

    # -- image slot ---------------------------------------------------------

    def stage_image(self, image: PendingImage) -> None:
        self.pending_image = image

    def clear_image(self) -> None:
        self.pending_image = None

    def take_image(self) -> PendingImage | None:
        image, self.pending_image = self.pending_image, None
        return image

    # -- workspaces ---------------------------------------------------------

    @property
    def selected_workspace(self) -> Workspace | None:
        for workspace in self.workspaces:
            if workspace.id == self.selected_workspace_id:
                return workspace
        return None

    def set_workspaces(self, workspaces: Iterable[Workspace]) -> None:
        """Cache the workspace list, auto-selecting the first when nothing is selected."""
        self.workspaces = list(workspaces)
        known = {workspace.id for workspace in self.workspaces}
        if self.selected_workspace_id not in known:
            self.selected_workspace_id = ""
        if not self.selected_workspace_id and self.workspaces:
            self.selected_workspace_id = self.workspaces[0].id

    def add_workspace(self, workspace: Workspace) -> None:
        self.workspaces.append(workspace)
        self.selected_workspace_id = workspace.id

    def remove_workspace(self, workspace_id: str) -> None:
        self.workspaces = [w for w in self.workspaces if w.id != workspace_id]
        if self.selected_workspace_id == workspace_id:
            self.selected_workspace_id = self.workspaces[0].id if self.workspaces else ""

    def select_workspace(self, workspace_id: str) -> bool:
        if any(w.id == workspace_id for w in self.workspaces):
            self.selected_workspace_id = workspace_id
            return True
        return False

    # -- tools --------------------------------------------------------------

    def extend_tool_catalog(self, tool_ids: Iterable[str]) -> None:
        for tool_id in tool_ids:
            normalized = tool_id.strip()
            if normalized and normalized not in self.tool_catalog:
                self.tool_catalog[normalized] = normalized.replace("_", " ").title()

    def toggle_tool(self, tool_id: str) -> bool:
        """Toggle a catalog tool; returns whether it is now selected."""
        if tool_id not in self.tool_catalog:
            raise KeyError(tool_id)
        if tool_id in self.selected_tools:
            self.selected_tools.remove(tool_id)
            return False
        self.selected_tools.append(tool_id)
        return True

    # -- agent memory -------------------------------------------------------

    def record_agent_exchange(self, user_text: str, output: str) -> None:
        self.history.append(HistoryItem(type="user", content=user_text))
        self.history.append(HistoryItem(type="assistant", content=output))

    # -- gating -------------------------------------------------------------

    def validate_send(self, text: str) -> str | None:
        """Return an inline hint when a send must be blocked, else ``None``."""
        has_image = self.pending_image is not None
        if not text.strip() and not has_image:
            return "Type a message or attach an image first."
        if self.mode is Mode.AGENT and not self.selected_workspace_id and not has_image:
            return "Select a workspace to use agent mode."
        return None
