"""Turn detection and OCR payloads into displayable assistant text."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import json
from typing import Any

ERROR_PREFIX = "**Error:**"
EXTRACTED_HEADING = "**Extracted Text:**"
OCR_RESULT_HEADING = "**OCR Result:**"
NO_TEXT_FOUND = "No text found in the image."
NO_TEXT_IN_BLOCKS = "No text found in image."
NO_OBJECTS = "No objects detected."

OCR_TEXT = "text"
OCR_OPAQUE = "opaque"
OCR_EMPTY = "empty"


@dataclass(frozen=True)
class DisplayResult:
    """What the conversation should show for one completed request."""

    text: str
    image: str | None = None
    reveal: bool = True


@dataclass(frozen=True)
class OcrExtraction:
    kind: str
    text: str


# -- detection ----------------------------------------------------------------


def count_detections(results: Any) -> dict[str, int]:
    """Count detections per class name, preserving first-seen order."""
    counts: dict[str, int] = {}
    if not isinstance(results, list):
        return counts
    for result in results:
        if not isinstance(result, dict):
            continue
        name = result.get("name")
        if not isinstance(name, str) or not name:
            continue
        counts[name] = counts.get(name, 0) + 1
    return counts


def summarize_detections(results: Any) -> str:
    """Render counts as ``"2 cats, 1 dog"``."""
    return ", ".join(
        f"{count} {name}{'s' if count > 1 else ''}"
        for name, count in count_detections(results).items()
    )


def detection_display(payload: Any, prompt: str = "") -> DisplayResult:
    if not isinstance(payload, dict):
        payload = {}
    annotated = payload.get("annotated_image")
    image = (
        f"data:image/png;base64,{annotated}"
        if isinstance(annotated, str) and annotated
        else None
    )

    if payload.get("error"):
        detail = payload.get("detail") or payload.get("error")
        return DisplayResult(f"{ERROR_PREFIX} {detail}", image=image, reveal=False)

    summary = summarize_detections(payload.get("results"))
    if summary:
        return DisplayResult(f"Detected: {summary}", image=image, reveal=False)

    text = NO_OBJECTS
    if prompt.strip():
        text += f" Searched for: {prompt.strip()}"
    return DisplayResult(text, image=image, reveal=False)


# -- OCR ----------------------------------------------------------------------

OcrMatcher = Callable[[dict[str, Any]], "OcrExtraction | None"]


def _direct_fields(payload: dict[str, Any]) -> OcrExtraction | None:
    for key in ("text", "extracted_text", "result", "content"):
        value = payload.get(key)
        if value:
            return OcrExtraction(OCR_TEXT, value if isinstance(value, str) else str(value))
    return None


def _structured_items(payload: dict[str, Any]) -> OcrExtraction | None:
    for key in ("blocks", "lines", "paragraphs"):
        items = payload.get(key)
        if not items:
            continue
        if not isinstance(items, list):
            items = []
        lines = []
        for item in items:
            if isinstance(item, dict):
                lines.append(
                    str(item.get("text") or item.get("content") or item.get("value") or "")
                )
            else:
                lines.append("")
        return OcrExtraction(OCR_TEXT, "\n".join(lines))
    return None


def _string_fields(payload: dict[str, Any]) -> OcrExtraction | None:
    for key in ("text", "content", "result", "extracted_text", "ocr_text", "data"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return OcrExtraction(OCR_TEXT, value)
    return None


def _opaque(payload: dict[str, Any]) -> OcrExtraction | None:
    if not payload:
        return None
    return OcrExtraction(
        OCR_OPAQUE, json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    )


OCR_MATCHERS: tuple[OcrMatcher, ...] = (
    _direct_fields,
    _structured_items,
    _string_fields,
    _opaque,
)


def extract_ocr_text(payload: Any) -> OcrExtraction:
    """Run the shape matchers in order and return the first hit."""
    if isinstance(payload, dict):
        for matcher in OCR_MATCHERS:
            extraction = matcher(payload)
            if extraction is not None:
                return extraction
    return OcrExtraction(OCR_EMPTY, "")


def _ocr_error_detail(payload: dict[str, Any]) -> str:
    details = payload.get("details")
    if isinstance(details, dict):
        for key in ("message", "error"):
            if details.get(key):
                return str(details[key])
    return str(payload.get("error"))


def ocr_display(payload: Any) -> DisplayResult:
    if isinstance(payload, dict) and payload.get("error"):
        return DisplayResult(
            f"{ERROR_PREFIX} {_ocr_error_detail(payload)}", reveal=False
        )

    extraction = extract_ocr_text(payload)
    if extraction.kind == OCR_TEXT:
        body = extraction.text or NO_TEXT_IN_BLOCKS
        return DisplayResult(f"{EXTRACTED_HEADING}\n\n{body}", reveal=False)
    if extraction.kind == OCR_OPAQUE:
        return DisplayResult(
            f"{OCR_RESULT_HEADING}\n\n```json\n{extraction.text}\n```", reveal=False
        )
    return DisplayResult(NO_TEXT_FOUND, reveal=False)


def error_display(detail: str) -> DisplayResult:
    return DisplayResult(f"{ERROR_PREFIX} {detail}", reveal=False)
