"""TaskManager slot and cancellation behaviour."""

from __future__ import annotations

import asyncio
import unittest

from agent_chat.task_manager import TaskManager


class TaskManagerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.tasks = TaskManager()
        self.cancelled: list[str] = []

    def _sleeper(self, label: str) -> asyncio.Task[None]:
        async def _run() -> None:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled.append(label)
                raise

        return asyncio.create_task(_run())

    async def test_cancel_slot_awaits_and_clears_it(self) -> None:
        dispatch = self._sleeper("dispatch")
        self.tasks.add(dispatch, name="dispatch")
        await asyncio.sleep(0)

        self.assertTrue(self.tasks.is_running("dispatch"))
        self.assertTrue(await self.tasks.cancel("dispatch"))
        self.assertTrue(dispatch.cancelled())
        self.assertEqual(self.cancelled, ["dispatch"])
        self.assertIsNone(self.tasks.get("dispatch"))
        self.assertFalse(await self.tasks.cancel("dispatch"))

    async def test_cancel_finished_slot_reports_false(self) -> None:
        done = asyncio.create_task(asyncio.sleep(0))
        self.tasks.add(done, name="reveal")
        await done
        self.assertFalse(self.tasks.is_running("reveal"))
        self.assertFalse(await self.tasks.cancel("reveal"))

    async def test_unknown_slot_is_ignored(self) -> None:
        self.assertFalse(await self.tasks.cancel("startup"))
        self.tasks.discard("startup")
        self.assertFalse(self.tasks.is_running("startup"))

    async def test_cancel_all_reaches_slots_and_loose_tasks(self) -> None:
        self.tasks.add(self._sleeper("dispatch"), name="dispatch")
        self.tasks.add(self._sleeper("reveal"), name="reveal")
        self.tasks.add(self._sleeper("submit"))
        await asyncio.sleep(0)

        await self.tasks.cancel_all()
        self.assertEqual(sorted(self.cancelled), ["dispatch", "reveal", "submit"])
        self.assertIsNone(self.tasks.get("dispatch"))

    async def test_loose_tasks_drop_out_when_finished(self) -> None:
        quick = asyncio.create_task(asyncio.sleep(0))
        self.tasks.add(quick)
        await quick
        await asyncio.sleep(0)
        self.assertEqual(self.tasks._loose, set())

    async def test_discard_forgets_without_cancelling(self) -> None:
        reveal = self._sleeper("reveal")
        self.tasks.add(reveal, name="reveal")
        self.tasks.discard("reveal")
        self.assertIsNone(self.tasks.get("reveal"))
        self.assertFalse(reveal.done())
        reveal.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await reveal

    async def test_discard_leaves_a_newer_occupant(self) -> None:
        old = asyncio.create_task(asyncio.sleep(0))
        new = self._sleeper("new")
        self.tasks.add(old, name="dispatch")
        self.tasks.add(new, name="dispatch")

        self.tasks.discard("dispatch", old)
        self.assertIs(self.tasks.get("dispatch"), new)
        self.tasks.discard("dispatch", new)
        self.assertIsNone(self.tasks.get("dispatch"))

        await old
        new.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await new


if __name__ == "__main__":
    unittest.main()
