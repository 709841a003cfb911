"""TOML configuration for the agent chat TUI.

The file lives at ``~/.config/agent-chat/config.toml``. Every table is
optional; missing keys take the defaults below. A file that parses but fails
validation is ignored as a whole and a warning is logged.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from copy import deepcopy
import logging
import os
from pathlib import Path
import tomllib
from typing import Annotated, Any, Literal
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "agent-chat"
CONFIG_PATH = CONFIG_DIR / "config.toml"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
MODE_NAMES = ("chat", "agent", "detect", "ocr")

DEFAULT_MODEL = "meta-llama/llama-4-maverick-17b-128e-instruct"
DEFAULT_GREETING = "Hello! I'm your AI Agent. Select a workspace and tools to get started!"


def _stripped(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _stripped_or_empty(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    return value.strip()


def _one_of(choices: tuple[str, ...], *, upper: bool = False) -> Callable[[Any], str]:
    def check(value: Any) -> str:
        folded = _stripped(value).upper() if upper else _stripped(value).lower()
        if folded not in choices:
            raise ValueError(f"{folded!r} is not one of {', '.join(choices)}")
        return folded

    return check


def _http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        raise ValueError("must be an http(s) URL with a host")
    return value.rstrip("/")


Text = Annotated[str, BeforeValidator(_stripped)]
OptionalText = Annotated[str, BeforeValidator(_stripped_or_empty)]
BaseUrl = Annotated[str, BeforeValidator(_stripped), AfterValidator(_http_url)]
ModeName = Annotated[str, BeforeValidator(_one_of(MODE_NAMES))]
LogLevel = Annotated[str, BeforeValidator(_one_of(LOG_LEVELS, upper=True))]


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AppConfig(_Section):
    title: Text = "Agent Chat"
    window_class: Text = Field(default="agent-chat", alias="class")


class BackendConfig(_Section):
    """Where requests go and how they authenticate.

    ``api_key`` wins over ``api_key_env``; leave both empty for backends that
    need no bearer token.
    """

    base_url: BaseUrl = "https://api.kolosal.ai"
    api_key: OptionalText = ""
    api_key_env: OptionalText = "AGENT_CHAT_API_KEY"
    timeout: float = Field(default=60.0, ge=1, le=3600)
    model: Text = DEFAULT_MODEL
    max_tokens: int = Field(default=1000, ge=1, le=1_000_000)

    def resolved_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        if not self.api_key_env:
            return ""
        return os.environ.get(self.api_key_env, "").strip()


class ModesConfig(_Section):
    """Start-up mode plus the detection and OCR request knobs."""

    default_mode: ModeName = "chat"
    detect_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    return_annotated: bool = True
    return_masks: bool = True
    ocr_language: Text = "auto"
    ocr_variant: Literal["form", "json"] = "form"
    ocr_invoice: bool = False


class UIConfig(_Section):
    reveal_chunk_size: int = Field(default=10, ge=1, le=4096)
    reveal_interval_seconds: float = Field(default=1 / 60, ge=0.0, le=1.0)
    show_timestamps: bool = True
    greeting: Text = DEFAULT_GREETING


class KeybindsConfig(_Section):
    """Textual key names per app action; each key may be used once."""

    send_message: Text = "ctrl+enter"
    new_conversation: Text = "ctrl+n"
    quit: Text = "ctrl+q"
    scroll_up: Text = "ctrl+k"
    scroll_down: Text = "ctrl+j"
    command_palette: Text = "ctrl+p"
    toggle_mode_picker: Text = "ctrl+o"
    toggle_model_picker: Text = "ctrl+l"
    toggle_workspace_picker: Text = "ctrl+w"
    attach_image: Text = "ctrl+t"
    interrupt: Text = "escape"

    @model_validator(mode="after")
    def _no_shared_keys(self) -> KeybindsConfig:
        counts = Counter(self.model_dump().values())
        shared = sorted(key for key, seen in counts.items() if seen > 1)
        if shared:
            raise ValueError(f"keys bound to more than one action: {', '.join(shared)}")
        return self


class LoggingConfig(_Section):
    level: LogLevel = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: Text = "~/.local/state/agent-chat/app.log"


class Config(_Section):
    app: AppConfig = AppConfig()
    backend: BackendConfig = BackendConfig()
    modes: ModesConfig = ModesConfig()
    ui: UIConfig = UIConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("cannot create config directory %s: %s", directory, exc)
    return directory


def _merged(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = deepcopy(base)
    for key, value in override.items():
        current = result.get(key)
        result[key] = (
            _merged(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return result


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse ``path``; unreadable or malformed files count as empty."""
    if not path.exists():
        return {}
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError as exc:
            LOGGER.warning("cannot restrict permissions on %s: %s", path, exc)
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning(
            "config.unreadable",
            extra={"event": "config.unreadable", "path": str(path), "reason": str(exc)},
        )
        return {}


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """Load, merge over defaults, and validate; returns plain nested dicts."""
    path = config_path or CONFIG_PATH
    ensure_config_dir(path.parent)
    raw = _merged(DEFAULT_CONFIG, _read_toml(path))
    try:
        return Config.model_validate(raw).model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "path": str(path), "reason": str(exc)},
        )
        return deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - anything else is a bug in the models
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def backend_settings(config: dict[str, dict[str, Any]]) -> BackendConfig:
    return BackendConfig.model_validate(config.get("backend", {}))


def modes_settings(config: dict[str, dict[str, Any]]) -> ModesConfig:
    return ModesConfig.model_validate(config.get("modes", {}))
