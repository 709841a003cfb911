"""A small markdown subset renderer for assistant replies.

Only four constructs are recognised, in strict precedence order:

1. fenced code blocks (```` ```lang ... ``` ````)
2. inline code spans (`` `code` ``)
3. bold spans (``**bold**``)
4. ``##`` / ``###`` header lines

Each pass only looks at the plain-text leaves left behind by the previous
one, so nothing inside a code block is ever treated as bold or as a header.
The result is a flat list of :class:`Segment` values that a widget can map
onto styled text.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import re

TEXT = "text"
CODE_BLOCK = "code_block"
INLINE_CODE = "inline_code"
BOLD = "bold"
HEADER = "header"

DEFAULT_CODE_LANGUAGE = "plaintext"

_FENCE_RE = re.compile(r"```(\w*)\n?(.*?)```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_HEADER_RE = re.compile(r"^(#{2,3}) (.+)$")


@dataclass(frozen=True)
class Segment:
    """One display unit of a rendered message."""

    kind: str
    text: str
    language: str = ""
    level: int = 0


def render(text: str) -> list[Segment]:
    """Turn ``text`` into an ordered list of display segments."""
    segments: list[Segment] = []
    cursor = 0
    for match in _FENCE_RE.finditer(text):
        if match.start() > cursor:
            segments.extend(_render_prose(text[cursor : match.start()]))
        segments.append(
            Segment(
                CODE_BLOCK,
                match.group(2).strip(),
                language=match.group(1) or DEFAULT_CODE_LANGUAGE,
            )
        )
        cursor = match.end()
    if cursor < len(text):
        segments.extend(_render_prose(text[cursor:]))

    merged = _merge_text(segments)
    return merged if merged else [Segment(TEXT, text)]


def code_blocks(text: str) -> list[Segment]:
    """Return only the fenced code blocks of ``text``."""
    return [segment for segment in render(text) if segment.kind == CODE_BLOCK]


def plain_text(segments: list[Segment]) -> str:
    """Flatten segments back into readable text without markup."""
    return "".join(segment.text for segment in segments)


def _render_prose(text: str) -> list[Segment]:
    leaves = [Segment(TEXT, text)]
    leaves = _split_leaves(leaves, _INLINE_CODE_RE, INLINE_CODE)
    leaves = _split_leaves(leaves, _BOLD_RE, BOLD)
    return _split_headers(leaves)


def _split_leaves(
    leaves: list[Segment], pattern: re.Pattern[str], kind: str
) -> list[Segment]:
    return _map_text_leaves(leaves, lambda text: _split_on(text, pattern, kind))


def _split_on(text: str, pattern: re.Pattern[str], kind: str) -> list[Segment]:
    result: list[Segment] = []
    cursor = 0
    for match in pattern.finditer(text):
        if match.start() > cursor:
            result.append(Segment(TEXT, text[cursor : match.start()]))
        result.append(Segment(kind, match.group(1)))
        cursor = match.end()
    if cursor < len(text):
        result.append(Segment(TEXT, text[cursor:]))
    return result


def _split_headers(leaves: list[Segment]) -> list[Segment]:
    return _map_text_leaves(leaves, _header_lines)


def _header_lines(text: str) -> list[Segment]:
    result: list[Segment] = []
    lines = text.split("\n")
    for index, line in enumerate(lines):
        match = _HEADER_RE.match(line.rstrip())
        if match:
            result.append(
                Segment(HEADER, match.group(2).strip(), level=len(match.group(1)))
            )
        elif line:
            result.append(Segment(TEXT, line))
        if index < len(lines) - 1:
            result.append(Segment(TEXT, "\n"))
    return result


def _map_text_leaves(
    leaves: list[Segment], split: Callable[[str], list[Segment]]
) -> list[Segment]:
    result: list[Segment] = []
    for leaf in leaves:
        if leaf.kind == TEXT:
            result.extend(split(leaf.text))
        else:
            result.append(leaf)
    return result


def _merge_text(segments: list[Segment]) -> list[Segment]:
    merged: list[Segment] = []
    for segment in segments:
        if segment.kind == TEXT and merged and merged[-1].kind == TEXT:
            merged[-1] = Segment(TEXT, merged[-1].text + segment.text)
        else:
            merged.append(segment)
    return merged
