"""Top-level package for agent-chat-tui."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import AgentChatApp
    from .client import BackendClient
    from .config import ensure_config_dir, load_config
    from .controller import ChatController
    from .dispatcher import ModeDispatcher
    from .exceptions import (
        AgentChatError,
        BackendConnectionError,
        BackendError,
        BackendPayloadError,
        BackendResponseError,
        ConfigValidationError,
        ImageValidationError,
    )
    from .markdown import render
    from .reveal import RevealEngine
    from .session import ChatSession, Mode
    from .state import ConversationState, StateManager

__all__ = [
    "AgentChatApp",
    "AgentChatError",
    "BackendClient",
    "BackendConnectionError",
    "BackendError",
    "BackendPayloadError",
    "BackendResponseError",
    "ChatController",
    "ChatSession",
    "ConfigValidationError",
    "ConversationState",
    "ImageValidationError",
    "Mode",
    "ModeDispatcher",
    "RevealEngine",
    "StateManager",
    "ensure_config_dir",
    "load_config",
    "render",
]

_LAZY_EXPORTS: dict[str, str] = {
    "AgentChatApp": ".app",
    "BackendClient": ".client",
    "ensure_config_dir": ".config",
    "load_config": ".config",
    "ChatController": ".controller",
    "ModeDispatcher": ".dispatcher",
    "AgentChatError": ".exceptions",
    "BackendConnectionError": ".exceptions",
    "BackendError": ".exceptions",
    "BackendPayloadError": ".exceptions",
    "BackendResponseError": ".exceptions",
    "ConfigValidationError": ".exceptions",
    "ImageValidationError": ".exceptions",
    "render": ".markdown",
    "RevealEngine": ".reveal",
    "ChatSession": ".session",
    "Mode": ".session",
    "ConversationState": ".state",
    "StateManager": ".state",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep the UI dependency optional at import time."""
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
