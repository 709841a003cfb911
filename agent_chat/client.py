"""Async HTTP client for the chat, agent, detection, OCR, and workspace endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .exceptions import (
    BackendConnectionError,
    BackendError,
    BackendPayloadError,
    BackendResponseError,
)
from .images import (
    decode_data_url,
    extension_for_mime,
    split_data_url,
    strip_data_url_prefix,
)
from .models import AgentStats, HistoryItem, ModelInfo, Workspace

LOGGER = logging.getLogger(__name__)

CHAT_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"
AGENT_GENERATE_PATH = "/v1/agent/generate"
AGENT_TOOLS_PATH = "/v1/agent/tools"
AGENT_STATS_PATH = "/v1/agent/stats"
SEGMENT_PATH = "/v1/segment/base64"
OCR_PATH = "/ocr"
OCR_FORM_PATH = "/ocr/form"
WORKSPACES_PATH = "/v1/workspaces"


def _decode_body(response: httpx.Response) -> Any:
    """Parse a JSON body, turning undecodable text into an error payload."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = response.text.strip()
        return {"error": text or "Unknown error"}


def _as_dict(payload: Any) -> dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    return {"data": payload}


RecordT = TypeVar("RecordT", bound=BaseModel)


def _parse(model: type[RecordT], data: Any, path: str) -> RecordT:
    """Validate a response record, mapping shape errors to a backend error."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        LOGGER.warning(
            "client.payload.invalid",
            extra={
                "event": "client.payload.invalid",
                "path": path,
                "record": model.__name__,
                "reason": str(exc),
            },
        )
        raise BackendPayloadError(
            f"{path} returned a malformed {model.__name__} record"
        ) from exc


def _log_skipped(record: str, path: str, exc: ValidationError) -> None:
    LOGGER.warning(
        "client.payload.skipped",
        extra={
            "event": "client.payload.skipped",
            "path": path,
            "record": record,
            "reason": str(exc),
        },
    )


class BackendClient:
    """Thin request/response wrapper around the backend HTTP API.

    Every method either returns the decoded payload or raises a
    :class:`~agent_chat.exceptions.BackendError` subclass. There is no
    automatic retry; the configured timeout bounds every call.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(timeout),
                transport=transport,
            )

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        LOGGER.debug(
            "client.request.start",
            extra={"event": "client.request.start", "method": method, "path": path},
        )
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            LOGGER.warning(
                "client.request.timeout",
                extra={"event": "client.request.timeout", "path": path},
            )
            raise BackendConnectionError(
                f"Request to {path} timed out after {self.timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "client.request.failed",
                extra={
                    "event": "client.request.failed",
                    "path": path,
                    "reason": str(exc),
                },
            )
            raise BackendConnectionError(f"Unable to reach backend: {exc}") from exc

        payload = _decode_body(response)
        if not response.is_success:
            LOGGER.warning(
                "client.request.rejected",
                extra={
                    "event": "client.request.rejected",
                    "path": path,
                    "status_code": response.status_code,
                },
            )
            raise BackendResponseError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                payload=_as_dict(payload),
            )
        return payload

    # -- chat / models ------------------------------------------------------

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        """Request a completion; returns the raw payload with ``choices``."""
        if not messages:
            raise ValueError("messages must not be empty")
        payload = await self._request(
            "POST",
            CHAT_PATH,
            json={"messages": messages, "model": model, "max_tokens": max_tokens},
        )
        return _as_dict(payload)

    @staticmethod
    def first_choice_content(payload: dict[str, Any]) -> str:
        """Return the first choice's message content, or an empty string."""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        return ""

    async def list_models(self) -> list[ModelInfo]:
        payload = await self._request("GET", MODELS_PATH)
        raw = payload.get("models") if isinstance(payload, dict) else payload
        if not isinstance(raw, list):
            raw = payload.get("data", []) if isinstance(payload, dict) else []
        models: list[ModelInfo] = []
        for item in raw:
            if isinstance(item, str):
                item = {"id": item, "name": item.strip()}
            try:
                models.append(ModelInfo.model_validate(item))
            except ValidationError as exc:
                _log_skipped("model", MODELS_PATH, exc)
        return models

    # -- agent --------------------------------------------------------------

    async def agent_generate(
        self,
        input_text: str,
        *,
        model: str,
        workspace_id: str,
        tools: list[str],
        history: list[HistoryItem],
    ) -> str:
        """Run one agent turn and return its ``output`` text."""
        payload = await self._request(
            "POST",
            AGENT_GENERATE_PATH,
            json={
                "input": input_text,
                "model": model,
                "workspace_id": workspace_id,
                "tools": list(tools),
                "history": [item.model_dump(exclude_none=True) for item in history],
            },
        )
        output = payload.get("output") if isinstance(payload, dict) else None
        return output if isinstance(output, str) else ""

    async def list_agent_tools(self) -> list[str]:
        payload = await self._request("GET", AGENT_TOOLS_PATH)
        raw = payload.get("tools") if isinstance(payload, dict) else payload
        if not isinstance(raw, list):
            return []
        tools: list[str] = []
        for item in raw:
            if isinstance(item, str) and item.strip():
                tools.append(item.strip())
            elif isinstance(item, dict):
                tool_id = item.get("id") or item.get("name")
                if isinstance(tool_id, str) and tool_id.strip():
                    tools.append(tool_id.strip())
        return tools

    async def agent_stats(self) -> AgentStats:
        payload = await self._request("GET", AGENT_STATS_PATH)
        return _parse(AgentStats, _as_dict(payload), AGENT_STATS_PATH)

    # -- detection ----------------------------------------------------------

    async def detect(
        self,
        image: str,
        *,
        prompts: list[str] | None = None,
        threshold: float = 0.5,
        return_annotated: bool = True,
        return_masks: bool = True,
    ) -> dict[str, Any]:
        """Segment an image. ``image`` may be a data URL or bare base64."""
        payload = await self._request(
            "POST",
            SEGMENT_PATH,
            json={
                "image": strip_data_url_prefix(image),
                "prompts": list(prompts or []),
                "return_annotated": return_annotated,
                "return_masks": return_masks,
                "threshold": threshold,
            },
        )
        return _as_dict(payload)

    # -- OCR ----------------------------------------------------------------

    async def ocr_extract(
        self,
        image_data: str,
        *,
        language: str = "auto",
        invoice: bool = False,
        auto_fix: bool = True,
    ) -> dict[str, Any]:
        """Extract text with a JSON body carrying bare base64 image data."""
        payload = await self._request(
            "POST",
            OCR_PATH,
            json={
                "image_data": strip_data_url_prefix(image_data),
                "language": language,
                "auto_fix": auto_fix,
                "invoice": invoice,
            },
        )
        return _as_dict(payload)

    async def ocr_form(
        self,
        image_data: str,
        *,
        language: str = "auto",
        invoice: bool = False,
    ) -> dict[str, Any]:
        """Extract text by uploading the decoded image as multipart form data."""
        mime_type, _ = split_data_url(image_data)
        filename = f"image.{extension_for_mime(mime_type)}"
        payload = await self._request(
            "POST",
            OCR_FORM_PATH,
            files={"image": (filename, decode_data_url(image_data), mime_type)},
            data={"language": language, "invoice": str(invoice).lower()},
        )
        return _as_dict(payload)

    # -- workspaces ---------------------------------------------------------

    async def list_workspaces(self) -> list[Workspace]:
        """Return the valid workspaces; malformed entries are logged and skipped."""
        payload = await self._request("GET", WORKSPACES_PATH)
        raw = payload.get("workspaces") if isinstance(payload, dict) else payload
        if not isinstance(raw, list):
            return []
        workspaces: list[Workspace] = []
        for item in raw:
            try:
                workspaces.append(Workspace.model_validate(item))
            except ValidationError as exc:
                _log_skipped("workspace", WORKSPACES_PATH, exc)
        return workspaces

    async def create_workspace(
        self,
        name: str,
        *,
        description: str | None = None,
        workspace_type: str = "personal",
    ) -> Workspace:
        normalized = name.strip()
        if not normalized:
            raise ValueError("Workspace name must not be empty.")
        body: dict[str, Any] = {"name": normalized, "workspace_type": workspace_type}
        if description:
            body["description"] = description
        payload = await self._request("POST", WORKSPACES_PATH, json=body)
        data = payload.get("workspace", payload) if isinstance(payload, dict) else None
        return _parse(Workspace, data, WORKSPACES_PATH)

    async def delete_workspace(self, workspace_id: str) -> None:
        await self._request("DELETE", f"{WORKSPACES_PATH}/{workspace_id}")

    async def check_connection(self) -> bool:
        """Return whether the backend answers the model catalog endpoint."""
        try:
            await self._request("GET", MODELS_PATH)
            return True
        except BackendError:
            return False
