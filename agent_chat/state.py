"""Send/reveal lifecycle states guarded by an asyncio lock."""

from __future__ import annotations

import asyncio
from enum import Enum


class ConversationState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    REVEALING = "REVEALING"
    CANCELLING = "CANCELLING"

    @property
    def blocks_send(self) -> bool:
        """Waiting on the backend or still revealing a reply."""
        return self in (ConversationState.LOADING, ConversationState.REVEALING)


class StateManager:
    """Single source of truth for whether the conversation accepts input.

    Reads through :attr:`current` are lock free for widgets that only paint
    the state. Anything that decides what to do next goes through the
    coroutine methods so two submits cannot both observe ``IDLE``.
    """

    def __init__(self, initial: ConversationState = ConversationState.IDLE) -> None:
        self._state = initial
        self._lock = asyncio.Lock()

    @property
    def current(self) -> ConversationState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state.blocks_send

    async def get_state(self) -> ConversationState:
        async with self._lock:
            return self._state

    async def transition_to(self, new_state: ConversationState) -> ConversationState:
        """Set the state unconditionally."""
        async with self._lock:
            self._state = new_state
        return new_state

    async def transition_if(
        self,
        expected_state: ConversationState,
        new_state: ConversationState,
    ) -> bool:
        """Compare-and-set; False leaves the state untouched."""
        async with self._lock:
            if self._state is not expected_state:
                return False
            self._state = new_state
        return True

    async def can_send(self) -> bool:
        async with self._lock:
            return self._state is ConversationState.IDLE
