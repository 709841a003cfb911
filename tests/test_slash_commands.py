"""Tests for the registry-based slash command dispatcher."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
import unittest

import httpx

from agent_chat.client import BackendClient

try:
    from textual.widgets import Input

    from agent_chat.app import AgentChatApp
    from agent_chat.screens import InfoScreen
except ModuleNotFoundError:
    Input = None  # type: ignore[assignment]
    AgentChatApp = None  # type: ignore[assignment]
    InfoScreen = None  # type: ignore[assignment]


class _Backend:
    """Minimal in-memory backend for workspace and stats endpoints."""

    def __init__(self) -> None:
        self.workspaces = [{"id": "w1", "name": "Docs"}]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/v1/workspaces" and request.method == "GET":
            return httpx.Response(200, json={"workspaces": self.workspaces})
        if path == "/v1/workspaces" and request.method == "POST":
            created = {"id": f"w{len(self.workspaces) + 1}", "name": "Notes"}
            self.workspaces.append(created)
            return httpx.Response(201, json={"workspace": created})
        if path.startswith("/v1/workspaces/") and request.method == "DELETE":
            workspace_id = path.rsplit("/", 1)[-1]
            self.workspaces = [w for w in self.workspaces if w["id"] != workspace_id]
            return httpx.Response(200, json={"deleted": True})
        if path == "/v1/agent/stats":
            return httpx.Response(200, json={"healthy": True, "stats": {"requests": 2}})
        if path == "/v1/agent/tools":
            return httpx.Response(200, json={"tools": []})
        return httpx.Response(200, json={"models": []})


@unittest.skipIf(AgentChatApp is None, "textual is not installed")
class SlashCommandTests(unittest.IsolatedAsyncioTestCase):
    """Validate the registry-based slash command dispatcher."""

    def setUp(self) -> None:
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)
        self._tmp = tempfile.TemporaryDirectory()
        config_path = Path(self._tmp.name) / "config.toml"
        config_path.write_text("[logging]\nstructured = false\n", encoding="utf-8")
        self.backend = _Backend()
        assert AgentChatApp is not None
        self.app = AgentChatApp(
            config_path=config_path,
            client=BackendClient(
                "https://backend.test", transport=httpx.MockTransport(self.backend)
            ),
        )

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)
        self._tmp.cleanup()

    async def _startup(self, pilot) -> None:  # type: ignore[no-untyped-def]
        for _ in range(100):
            await pilot.pause()
            startup = self.app.controller.tasks.get("startup")
            if startup is None or startup.done():
                return

    async def test_unknown_slash_command_not_handled(self) -> None:
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            self.assertFalse(await self.app._dispatch_slash_command("/foo"))

    async def test_command_clears_input(self) -> None:
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            input_widget = self.app.query_one("#message_input", Input)
            input_widget.value = "/noimage"
            self.assertTrue(await self.app._dispatch_slash_command("/noimage"))
            self.assertEqual(input_widget.value, "")
            self.assertEqual(self.app.sub_title, "Image removed.")

    async def test_custom_registered_command(self) -> None:
        result: list[str] = []

        async def _handle_ping(args: str) -> None:
            result.append(f"pong:{args}")

        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            self.app.register_slash_command("/PING", _handle_ping)
            self.assertTrue(await self.app._dispatch_slash_command("/ping hello"))
            self.assertEqual(result, ["pong:hello"])

    async def test_workspace_create_select_delete(self) -> None:
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            self.assertEqual(self.app.session.selected_workspace_id, "w1")

            await self.app._dispatch_slash_command("/workspace-new Notes")
            self.assertEqual(self.app.session.selected_workspace_id, "w2")
            self.assertEqual(self.app.sub_title, "Workspace created: Notes")

            await self.app._dispatch_slash_command("/workspace w1")
            self.assertEqual(self.app.session.selected_workspace_id, "w1")
            await self.app._dispatch_slash_command("/workspace nope")
            self.assertEqual(self.app.sub_title, "Unknown workspace: nope")

            await self.app._dispatch_slash_command("/workspace-delete")
            self.assertEqual(self.app.session.selected_workspace_id, "w2")
            self.assertEqual([w["id"] for w in self.backend.workspaces], ["w2"])

    async def test_stats_opens_info_screen(self) -> None:
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            await self.app._dispatch_slash_command("/stats")
            await pilot.pause()
            self.assertIsInstance(self.app.screen, InfoScreen)

    async def test_save_image_without_image(self) -> None:
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            await self.app._dispatch_slash_command("/save-image")
            self.assertEqual(self.app.sub_title, "Usage: /save-image <path>")
            await self.app._dispatch_slash_command("/save-image /tmp/out.png")
            self.assertEqual(self.app.sub_title, "No image in the conversation.")

    async def test_save_image_writes_decoded_bytes(self) -> None:
        image_path = Path(self._tmp.name) / "in.png"
        image_path.write_bytes(b"\x89PNGbytes")
        target = Path(self._tmp.name) / "out.png"
        async with self.app.run_test() as pilot:
            await self._startup(pilot)
            await self.app._dispatch_slash_command(f"/image {image_path}")
            self.app.session.messages[0].image = self.app.session.take_image()
            await self.app._dispatch_slash_command(f"/save-image {target}")
        self.assertEqual(target.read_bytes(), b"\x89PNGbytes")


if __name__ == "__main__":
    unittest.main()
