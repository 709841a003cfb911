"""Unit tests for individual widget classes."""

from __future__ import annotations

import unittest

from agent_chat.images import PendingImage
from agent_chat.markdown import BOLD, CODE_BLOCK, HEADER, INLINE_CODE, TEXT, render
from agent_chat.session import Message, Role

try:
    from agent_chat.widgets.code_block import CodeBlock
    from agent_chat.widgets.input_box import InputBox
    from agent_chat.widgets.status_bar import status_segments
    from agent_chat.widgets.message import (
        HEADER_STYLES,
        INLINE_CODE_STYLE,
        MessageBubble,
        group_segments,
        prose_text,
    )
except ModuleNotFoundError:
    CodeBlock = None  # type: ignore[assignment,misc]
    InputBox = None  # type: ignore[assignment,misc]
    status_segments = None  # type: ignore[assignment]
    MessageBubble = None  # type: ignore[assignment,misc]
    group_segments = None  # type: ignore[assignment]
    prose_text = None  # type: ignore[assignment]


@unittest.skipIf(prose_text is None, "textual is not installed")
class ProseTextTests(unittest.TestCase):
    """Validate how rendered segments map onto rich styles."""

    def _styles(self, source: str) -> dict[str, str]:
        assert prose_text is not None
        text = prose_text(render(source))
        return {
            text.plain[span.start : span.end]: str(span.style) for span in text.spans
        }

    def test_plain_text_is_unstyled(self) -> None:
        assert prose_text is not None
        text = prose_text(render("just words"))
        self.assertEqual(text.plain, "just words")
        self.assertEqual(text.spans, [])

    def test_bold_and_inline_code_styles(self) -> None:
        styles = self._styles("a **b** and `c`")
        self.assertEqual(styles["b"], "bold")
        self.assertEqual(styles["c"], INLINE_CODE_STYLE)

    def test_header_levels(self) -> None:
        styles = self._styles("## Big\n### Small")
        self.assertEqual(styles["Big"], HEADER_STYLES[2])
        self.assertEqual(styles["Small"], HEADER_STYLES[3])

    def test_code_block_is_inlined(self) -> None:
        assert prose_text is not None
        text = prose_text(render("see\n```python\nx = 1\n```"))
        self.assertIn("x = 1", text.plain)


@unittest.skipIf(group_segments is None, "textual is not installed")
class GroupSegmentsTests(unittest.TestCase):
    def test_code_blocks_stand_alone(self) -> None:
        assert group_segments is not None
        groups = group_segments(render("intro **b**\n```js\nf()\n```\noutro"))
        kinds = [[segment.kind for segment in group] for group in groups]
        self.assertEqual(kinds, [[TEXT, BOLD, TEXT], [CODE_BLOCK], [TEXT]])

    def test_no_code_is_single_group(self) -> None:
        assert group_segments is not None
        groups = group_segments(render("## Title\nuse `x`"))
        self.assertEqual(len(groups), 1)
        self.assertIn(HEADER, [segment.kind for segment in groups[0]])
        self.assertIn(INLINE_CODE, [segment.kind for segment in groups[0]])


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class MessageBubbleTests(unittest.TestCase):
    """Validate MessageBubble content management."""

    def _make_bubble(self, content: str = "", role: Role = Role.USER, **kwargs) -> MessageBubble:  # type: ignore[no-untyped-def]
        assert MessageBubble is not None
        return MessageBubble(Message(role, content, kwargs.pop("image", None)), **kwargs)

    def test_initial_content_stored(self) -> None:
        self.assertEqual(self._make_bubble(content="hello").message_content, "hello")

    def test_role_classes(self) -> None:
        self.assertIn("role-user", self._make_bubble().classes)
        self.assertIn("role-assistant", self._make_bubble(role=Role.ASSISTANT).classes)

    def test_role_prefix(self) -> None:
        self.assertEqual(self._make_bubble().role_prefix, "You")
        self.assertEqual(self._make_bubble(role=Role.ASSISTANT).role_prefix, "Assistant")

    def test_content_follows_message(self) -> None:
        bubble = self._make_bubble(content="")
        bubble.message.content = "updated"
        self.assertEqual(bubble.message_content, "updated")

    def test_timestamp_and_final_flag_stored(self) -> None:
        bubble = self._make_bubble(timestamp="12:00", final=False)
        self.assertEqual(bubble.timestamp, "12:00")
        self.assertFalse(bubble.final)

    def test_image_label(self) -> None:
        image = PendingImage(
            data_url="data:image/png;base64,QUJD",
            mime_type="image/png",
            name="cat.png",
            size=2048,
        )
        self.assertEqual(
            self._make_bubble(image=image).image_label(), "[image: cat.png (2 KiB)]"
        )
        self.assertEqual(self._make_bubble().image_label(), "")


@unittest.skipIf(CodeBlock is None, "textual is not installed")
class CodeBlockTests(unittest.TestCase):
    def test_attributes(self) -> None:
        assert CodeBlock is not None
        block = CodeBlock("print(1)", "python")
        self.assertEqual(block.code, "print(1)")
        self.assertEqual(block.lang, "python")

    def test_missing_language_defaults_to_plaintext(self) -> None:
        assert CodeBlock is not None
        self.assertEqual(CodeBlock("x").lang, "plaintext")

    def test_caption_counts_lines(self) -> None:
        assert CodeBlock is not None
        self.assertEqual(CodeBlock("a\nb", "go").caption, "go · 2 lines")
        self.assertEqual(CodeBlock("a", "go").caption, "go · 1 line")
        self.assertEqual(CodeBlock("", "go").caption, "go · 0 lines")

    def test_copy_message_carries_code(self) -> None:
        assert CodeBlock is not None
        self.assertEqual(CodeBlock.CopyRequested("abc").code, "abc")


@unittest.skipIf(InputBox is None, "textual is not installed")
class InputBoxTests(unittest.TestCase):
    COMMANDS = (("/mode <name>", "Switch mode"), ("/model <id>", "Switch model"), ("/clear", "Reset"))

    def test_prefix_filters_commands(self) -> None:
        assert InputBox is not None
        box = InputBox(self.COMMANDS)
        self.assertEqual(
            box.matching_commands("/MO"),
            ["/mode <name>  Switch mode", "/model <id>  Switch model"],
        )
        self.assertEqual(box.matching_commands("/clear now"), ["/clear  Reset"])
        self.assertEqual(box.matching_commands("/x"), [])

    def test_bare_slash_lists_everything(self) -> None:
        assert InputBox is not None
        self.assertEqual(len(InputBox(self.COMMANDS).matching_commands("/")), 3)


@unittest.skipIf(status_segments is None, "textual is not installed")
class StatusSegmentsTests(unittest.TestCase):
    def test_chat_mode_hides_agent_fields(self) -> None:
        assert status_segments is not None
        self.assertEqual(
            status_segments(
                connection_state="online",
                mode_label="Chat",
                model="m1",
                message_count=3,
                workspace="Docs",
                tool_count=2,
            ),
            ["online", "Mode: Chat", "Model: m1", "Messages: 3"],
        )

    def test_agent_mode_with_staged_image(self) -> None:
        assert status_segments is not None
        self.assertEqual(
            status_segments(
                connection_state="offline",
                mode_label="Agent",
                model="",
                message_count=1,
                agent_mode=True,
                tool_count=2,
                image="cat.png",
            ),
            [
                "offline",
                "Mode: Agent",
                "Model: -",
                "Workspace: none",
                "Tools: 2",
                "Image: cat.png",
                "Messages: 1",
            ],
        )


if __name__ == "__main__":
    unittest.main()
