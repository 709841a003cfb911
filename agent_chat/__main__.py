"""CLI entrypoint for agent-chat."""

from __future__ import annotations

import argparse
from importlib import metadata
from pathlib import Path
from typing import Sequence

from .config import ensure_config_dir

DISTRIBUTION = "agent-chat-tui"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-chat",
        description="Chat, agent, object detection and OCR in the terminal",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Read configuration from PATH instead of ~/.config/agent-chat/config.toml",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Ensure configuration exists, handle CLI flags, and run the TUI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version(DISTRIBUTION)
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"agent-chat {version}")
        return

    from .app import AgentChatApp

    if args.config is None:
        ensure_config_dir()
    app = AgentChatApp(config_path=args.config)
    app.run()


if __name__ == "__main__":
    main()
