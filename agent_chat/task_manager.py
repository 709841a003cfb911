"""Bookkeeping for the controller's background asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


async def _await_cancelled(task: asyncio.Task[Any]) -> None:
    try:
        await task
    except asyncio.CancelledError:
        pass


class TaskManager:
    """Hold slot-named tasks plus fire-and-forget ones.

    Slots used by the app are ``"startup"`` (catalog refresh), ``"dispatch"``
    (the backend request) and ``"reveal"`` (incremental display). Putting a
    task in an occupied slot overwrites the reference only; the caller is
    responsible for cancelling the previous occupant first.
    """

    def __init__(self) -> None:
        self._slots: dict[str, asyncio.Task[Any]] = {}
        self._loose: set[asyncio.Task[Any]] = set()

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        if name is None:
            self._loose.add(task)
            task.add_done_callback(self._loose.discard)
            return
        self._slots[name] = task

    def get(self, name: str) -> asyncio.Task[Any] | None:
        return self._slots.get(name)

    def is_running(self, name: str) -> bool:
        task = self._slots.get(name)
        return task is not None and not task.done()

    def discard(self, name: str, task: asyncio.Task[Any] | None = None) -> None:
        """Forget a slot without cancelling it.

        With ``task`` given, the slot is cleared only while it still holds
        that exact task.
        """
        current = self._slots.get(name)
        if current is None or (task is not None and current is not task):
            return
        del self._slots[name]

    async def cancel(self, name: str) -> bool:
        """Cancel and await a slot; True when it had not finished yet."""
        task = self._slots.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        await _await_cancelled(task)
        LOGGER.debug(
            "task.cancelled", extra={"event": "task.cancelled", "task_name": name}
        )
        return True

    async def cancel_all(self) -> None:
        live = [task for task in (*self._slots.values(), *self._loose) if not task.done()]
        self._slots.clear()
        self._loose.clear()
        for task in live:
            task.cancel()
        for task in live:
            await _await_cancelled(task)
