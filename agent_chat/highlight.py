"""Rule-table syntax highlighting for fenced code blocks.

This is lexing without a grammar: every line is scanned left to right and
the first rule whose pattern matches at the current position wins. The
classification is approximate and language-agnostic on purpose; it only
has to give code blocks a readable colour scheme in the terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re

from rich.text import Text


class TokenKind(str, Enum):
    COMMENT = "comment"
    STRING = "string"
    KEYWORD = "keyword"
    BUILTIN = "builtin"
    NUMBER = "number"
    OPERATOR = "operator"
    BRACKET = "bracket"
    IDENTIFIER = "identifier"
    PLAIN = "plain"
    NEWLINE = "newline"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str


Rule = tuple[TokenKind, re.Pattern[str]]

_KEYWORDS = (
    "const|let|var|function|return|if|else|for|while|class|import|export|from|"
    "async|await|try|catch|throw|new|this|super|extends|implements|interface|"
    "type|enum|def|print|elif|except|finally|with|as|lambda|yield|pass|break|"
    "continue|in|is|not|and|or|True|False|None"
)
_BUILTINS = (
    "console|document|window|alert|parseInt|parseFloat|Math|Array|Object|String|"
    "Number|Boolean|JSON|Promise|fetch|setTimeout|setInterval|getElementById|"
    "innerHTML|querySelector|addEventListener"
)

RULES: tuple[Rule, ...] = (
    (TokenKind.COMMENT, re.compile(r"//.*")),
    (TokenKind.COMMENT, re.compile(r"#.*")),
    (
        TokenKind.STRING,
        re.compile(r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|`(?:[^`\\]|\\.)*`"),
    ),
    (TokenKind.KEYWORD, re.compile(rf"\b(?:{_KEYWORDS})\b")),
    (TokenKind.BUILTIN, re.compile(rf"\b(?:{_BUILTINS})\b")),
    (TokenKind.NUMBER, re.compile(r"\b\d+\.?\d*\b")),
    (TokenKind.OPERATOR, re.compile(r"===|!==|==|!=|<=|>=|&&|\|\||[+\-*/%=<>!&|^~]")),
    (TokenKind.BRACKET, re.compile(r"[{}\[\]().,;:]")),
)

_WORD_RE = re.compile(r"\w+")

# Colours follow a dark "Dark+" style palette.
STYLES: dict[TokenKind, str] = {
    TokenKind.COMMENT: "#6a9955",
    TokenKind.STRING: "#ce9178",
    TokenKind.KEYWORD: "#569cd6",
    TokenKind.BUILTIN: "#dcdcaa",
    TokenKind.NUMBER: "#b5cea8",
    TokenKind.OPERATOR: "#d4d4d4",
    TokenKind.BRACKET: "#ffd700",
    TokenKind.IDENTIFIER: "#9cdcfe",
    TokenKind.PLAIN: "#d4d4d4",
    TokenKind.NEWLINE: "",
}


def tokenize_line(line: str, rules: tuple[Rule, ...] = RULES) -> list[Token]:
    """Split one line into classified tokens.

    The first rule matching at the current position consumes its match.
    Otherwise an identifier run is consumed, or failing that a single
    character. Zero-length matches are ignored so the scan always advances.
    """
    tokens: list[Token] = []
    remaining = line
    while remaining:
        for kind, pattern in rules:
            match = pattern.match(remaining)
            if match and match.end() > 0:
                tokens.append(Token(kind, match.group(0)))
                remaining = remaining[match.end() :]
                break
        else:
            word = _WORD_RE.match(remaining)
            if word:
                tokens.append(Token(TokenKind.IDENTIFIER, word.group(0)))
                remaining = remaining[word.end() :]
            else:
                tokens.append(Token(TokenKind.PLAIN, remaining[0]))
                remaining = remaining[1:]
    return tokens


def highlight_lines(code: str, language: str = "") -> list[list[Token]]:
    """One token list per line; every language shares :data:`RULES`."""
    return [tokenize_line(line) for line in code.split("\n")]


def highlight(code: str, language: str = "") -> list[Token]:
    """Tokenize ``code`` into one flat stream with explicit newline tokens."""
    tokens: list[Token] = []
    lines = highlight_lines(code, language)
    for index, line_tokens in enumerate(lines):
        tokens.extend(line_tokens)
        if index < len(lines) - 1:
            tokens.append(Token(TokenKind.NEWLINE, "\n"))
    return tokens


def to_rich_text(tokens: list[Token]) -> Text:
    """Convert a token stream into a styled ``rich`` Text."""
    text = Text(no_wrap=False)
    for token in tokens:
        text.append(token.text, style=STYLES.get(token.kind) or None)
    return text
