"""Image staging: validation, data-URL encoding, and paste path extraction."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
import logging
from pathlib import Path
import re

from .exceptions import ImageValidationError

LOGGER = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024

SUPPORTED_MIME_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/bmp",
)

_EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}

_MIME_TO_EXTENSION: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/gif": "gif",
}

IMAGE_EXTENSIONS: frozenset[str] = frozenset(_EXTENSION_TO_MIME)

_DATA_URL_MIME = re.compile(r"data:([^;]+);")

INVALID_TYPE_MESSAGE = "Invalid file type. Supported: jpeg, png, webp, bmp"
TOO_LARGE_MESSAGE = "File too large. Maximum size: 10MB"


@dataclass(frozen=True)
class PendingImage:
    """An image staged for the next send, already encoded as a data URL."""

    data_url: str
    mime_type: str
    name: str
    size: int

    @classmethod
    def from_data_url(cls, data_url: str, name: str) -> PendingImage:
        """Wrap an image received from the backend; size is estimated from the payload."""
        mime_type, payload = split_data_url(data_url)
        return cls(
            data_url=data_url,
            mime_type=mime_type,
            name=name,
            size=len(payload) * 3 // 4,
        )

    @property
    def base64_data(self) -> str:
        return strip_data_url_prefix(self.data_url)

    def describe(self) -> str:
        kib = self.size / 1024
        return f"{self.name} ({kib:.0f} KiB)"


def mime_type_for(path: Path) -> str | None:
    """Return the supported MIME type for a path's extension, if any."""
    return _EXTENSION_TO_MIME.get(path.suffix.lower())


def extension_for_mime(mime_type: str) -> str:
    """Map a MIME type to the file extension used for multipart uploads."""
    return _MIME_TO_EXTENSION.get(mime_type.strip().lower(), "png")


def encode_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def split_data_url(value: str) -> tuple[str, str]:
    """Split a data URL into ``(mime_type, base64_payload)``.

    Bare base64 strings are returned unchanged with an ``image/png`` type.
    """
    mime_type = "image/png"
    payload = value
    if "," in value:
        header, payload = value.split(",", 1)
        match = _DATA_URL_MIME.search(header)
        if match:
            mime_type = match.group(1)
    return mime_type, payload


def strip_data_url_prefix(value: str) -> str:
    return split_data_url(value)[1]


def decode_data_url(value: str) -> bytes:
    """Decode the binary payload of a data URL or bare base64 string."""
    try:
        return base64.b64decode(strip_data_url_prefix(value), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageValidationError(f"Image data is not valid base64: {exc}") from exc


def load_image(path: str | Path, *, max_bytes: int = MAX_IMAGE_BYTES) -> PendingImage:
    """Validate an image file and encode it for staging.

    Raises:
        ImageValidationError: when the file is missing, of an unsupported
            type, or larger than ``max_bytes``.
    """
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise ImageValidationError(f"Image not found: {path}")
    if not resolved.is_file():
        raise ImageValidationError(f"Not a file: {path}")

    mime_type = mime_type_for(resolved)
    if mime_type is None or mime_type not in SUPPORTED_MIME_TYPES:
        raise ImageValidationError(INVALID_TYPE_MESSAGE)

    size = resolved.stat().st_size
    if size > max_bytes:
        raise ImageValidationError(TOO_LARGE_MESSAGE)

    try:
        data = resolved.read_bytes()
    except OSError as exc:
        raise ImageValidationError(f"Unable to read image: {exc}") from exc

    LOGGER.debug(
        "image.staged",
        extra={"event": "image.staged", "image_name": resolved.name, "bytes": size},
    )
    return PendingImage(
        data_url=encode_data_url(data, mime_type),
        mime_type=mime_type,
        name=resolved.name,
        size=size,
    )


def extract_paths_from_paste(text: str) -> list[str]:
    """Extract file paths from pasted text (common drag/drop behavior)."""
    candidates: list[str] = []
    for token in text.strip().split():
        cleaned = token.strip().strip("'\"")
        if cleaned.startswith("file://"):
            cleaned = cleaned[len("file://") :]
        if cleaned:
            candidates.append(cleaned)
    return candidates


def is_image_path(path: str) -> bool:
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS
