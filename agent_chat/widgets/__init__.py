"""Widget exports for the agent_chat UI."""

from .code_block import CodeBlock
from .conversation import ConversationView
from .input_box import InputBox
from .message import MessageBubble
from .status_bar import StatusBar

__all__ = ["CodeBlock", "ConversationView", "InputBox", "MessageBubble", "StatusBar"]
