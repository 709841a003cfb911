"""Drive AgentChatApp headlessly against a mocked backend."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
import unittest

import httpx

from agent_chat.client import BackendClient
from agent_chat.session import Mode

try:
    from textual.widgets import Input

    from agent_chat.app import AgentChatApp
    from agent_chat.screens import InfoScreen
except ModuleNotFoundError:
    Input = None  # type: ignore[assignment]
    AgentChatApp = None  # type: ignore[assignment]
    InfoScreen = None  # type: ignore[assignment]

TEST_CONFIG = """
[ui]
reveal_interval_seconds = 0
show_timestamps = false

[logging]
structured = false
"""


def _backend_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/v1/models":
        return httpx.Response(200, json={"models": [{"id": "m1"}, {"id": "m2"}]})
    if path == "/v1/workspaces":
        return httpx.Response(200, json={"workspaces": [{"id": "w1", "name": "Docs"}]})
    if path == "/v1/agent/tools":
        return httpx.Response(200, json={"tools": ["web_search"]})
    if path == "/v1/chat/completions":
        return httpx.Response(200, json={"choices": [{"message": {"content": "Hi there!"}}]})
    return httpx.Response(404, json={"error": "not found"})


@unittest.skipIf(AgentChatApp is None, "textual is not installed")
class AppRuntimeTests(unittest.IsolatedAsyncioTestCase):
    """Startup, sending, slash commands and shutdown through run_test()."""

    def setUp(self) -> None:
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)
        self._tmp = tempfile.TemporaryDirectory()
        self.config_path = Path(self._tmp.name) / "config.toml"
        self.config_path.write_text(TEST_CONFIG.strip(), encoding="utf-8")

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)
        self._tmp.cleanup()

    def _build_app(self) -> AgentChatApp:
        assert AgentChatApp is not None
        client = BackendClient(
            "https://backend.test", transport=httpx.MockTransport(_backend_handler)
        )
        return AgentChatApp(config_path=self.config_path, client=client)

    async def _settle(self, pilot, app: AgentChatApp) -> None:  # type: ignore[no-untyped-def]
        for _ in range(200):
            await pilot.pause()
            startup = app.controller.tasks.get("startup")
            if not app.controller.is_busy and (startup is None or startup.done()):
                return
        self.fail("app did not settle")

    async def _type(self, pilot, app: AgentChatApp, text: str) -> None:  # type: ignore[no-untyped-def]
        app.query_one("#message_input", Input).value = text
        await app.send_user_message()
        await self._settle(pilot, app)

    async def test_startup_loads_catalogs(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            self.assertEqual(app._connection_state, "online")
            self.assertEqual([model.id for model in app.controller.models], ["m1", "m2"])
            self.assertEqual(app.session.selected_workspace_id, "w1")

    async def test_send_hello_shows_reply(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "Hello")
            for _ in range(50):
                if len(app.session.messages) == 3:
                    break
                await pilot.pause()
            self.assertEqual(
                [message.content for message in app.session.messages][1:],
                ["Hello", "Hi there!"],
            )
            self.assertEqual(len(app.conversation.bubbles), 3)
            self.assertEqual(app.query_one("#message_input", Input).value, "")

    async def test_empty_send_shows_hint(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "   ")
            self.assertEqual(app.sub_title, "Type a message or attach an image first.")
            self.assertEqual(len(app.session.messages), 1)

    async def test_slash_mode_and_model(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "/mode ocr")
            self.assertIs(app.session.mode, Mode.OCR)
            self.assertIn("attach an image", app.sub_title)

            await self._type(pilot, app, "/mode nonsense")
            self.assertIs(app.session.mode, Mode.OCR)

            await self._type(pilot, app, "/model m2")
            self.assertEqual(app.session.model, "m2")
            await self._type(pilot, app, "/model unknown")
            self.assertEqual(app.session.model, "m2")

    async def test_slash_tool_and_image(self) -> None:
        app = self._build_app()
        image_path = Path(self._tmp.name) / "cat.png"
        image_path.write_bytes(b"\x89PNG")
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "/tool web_search")
            self.assertEqual(app.session.selected_tools, ["web_search"])

            await self._type(pilot, app, f"/image {image_path}")
            self.assertIsNotNone(app.session.pending_image)
            await self._type(pilot, app, "/noimage")
            self.assertIsNone(app.session.pending_image)

    async def test_clear_resets_conversation(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "Hello")
            await self._type(pilot, app, "/clear")
            await pilot.pause()
            self.assertEqual(
                [message.content for message in app.session.messages],
                ["Chat cleared! How can I help you?"],
            )
            self.assertEqual(len(app.conversation.bubbles), 1)

    async def test_help_opens_info_screen(self) -> None:
        app = self._build_app()
        async with app.run_test() as pilot:
            await self._settle(pilot, app)
            await self._type(pilot, app, "/help")
            self.assertIsInstance(app.screen, InfoScreen)

    async def test_bindings_follow_config(self) -> None:
        app = self._build_app()
        actions = {binding.action: binding.key for binding in app._binding_specs}
        self.assertEqual(actions["new_conversation"], "ctrl+n")
        self.assertEqual(actions["interrupt"], "escape")

    async def test_shutdown_cancels_pending_work(self) -> None:
        app = self._build_app()
        cancelled: list[str] = []

        async def _pending_submit() -> None:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.append("submit")
                raise

        async with app.run_test():
            task = asyncio.create_task(_pending_submit())
            app.controller.tasks.add(task)

        self.assertTrue(task.done())
        self.assertEqual(cancelled, ["submit"])


if __name__ == "__main__":
    unittest.main()
