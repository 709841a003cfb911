"""Route one user send to the endpoint family selected by the session mode."""

from __future__ import annotations

import logging

from .client import BackendClient
from .config import ModesConfig
from .exceptions import BackendError
from .images import PendingImage
from .normalize import DisplayResult, detection_display, error_display, ocr_display
from .session import ChatSession, Mode

LOGGER = logging.getLogger(__name__)

EMPTY_REPLY = "Sorry, I couldn't process that."
GENERIC_FAILURE = "Sorry, there was an error. Please try again."


def resolve_route(session: ChatSession, image: PendingImage | None) -> Mode:
    """Return the mode that will actually serve a send.

    Detection and OCR need an image and agent mode needs a selected
    workspace; when a precondition is missing the send falls back to chat.
    """
    mode = session.mode
    if mode.needs_image and image is None:
        return Mode.CHAT
    if mode is Mode.AGENT and not session.selected_workspace_id:
        return Mode.CHAT
    return mode


def detection_prompts(text: str) -> list[str]:
    stripped = text.strip()
    if not stripped:
        return []
    return [part.strip() for part in stripped.split(",")]


class ModeDispatcher:
    """Perform the backend call for a send and normalize the outcome.

    :meth:`dispatch` never raises for backend or payload problems; the
    failure is turned into display text instead. Cancellation propagates.
    """

    def __init__(
        self,
        client: BackendClient,
        settings: ModesConfig | None = None,
        *,
        max_tokens: int = 1000,
    ) -> None:
        self.client = client
        self.settings = settings or ModesConfig()
        self.max_tokens = max_tokens

    async def dispatch(
        self,
        session: ChatSession,
        text: str,
        image: PendingImage | None = None,
    ) -> DisplayResult:
        route = resolve_route(session, image)
        LOGGER.info(
            "dispatch.start",
            extra={
                "event": "dispatch.start",
                "mode": session.mode.value,
                "route": route.value,
                "has_image": image is not None,
            },
        )
        if image is not None and not route.needs_image:
            LOGGER.info(
                "dispatch.image_ignored",
                extra={"event": "dispatch.image_ignored", "route": route.value},
            )

        if route is Mode.DETECT and image is not None:
            return await self._detect(text, image)
        if route is Mode.OCR and image is not None:
            return await self._ocr(image)
        if route is Mode.AGENT:
            return await self._agent(session, text)
        return await self._chat(session)

    async def _detect(self, text: str, image: PendingImage) -> DisplayResult:
        try:
            payload = await self.client.detect(
                image.base64_data,
                prompts=detection_prompts(text),
                threshold=self.settings.detect_threshold,
                return_annotated=self.settings.return_annotated,
                return_masks=self.settings.return_masks,
            )
        except BackendError as exc:
            LOGGER.warning(
                "dispatch.detect.failed",
                extra={"event": "dispatch.detect.failed", "error": str(exc)},
            )
            return error_display(_error_detail(exc))
        return detection_display(payload, text)

    async def _ocr(self, image: PendingImage) -> DisplayResult:
        try:
            if self.settings.ocr_variant == "json":
                payload = await self.client.ocr_extract(
                    image.data_url,
                    language=self.settings.ocr_language,
                    invoice=self.settings.ocr_invoice,
                )
            else:
                payload = await self.client.ocr_form(
                    image.data_url,
                    language=self.settings.ocr_language,
                    invoice=self.settings.ocr_invoice,
                )
        except BackendError as exc:
            LOGGER.warning(
                "dispatch.ocr.failed",
                extra={"event": "dispatch.ocr.failed", "error": str(exc)},
            )
            return error_display(_error_detail(exc))
        return ocr_display(payload)

    async def _agent(self, session: ChatSession, text: str) -> DisplayResult:
        input_text = text.strip()
        try:
            output = await self.client.agent_generate(
                input_text,
                model=session.model,
                workspace_id=session.selected_workspace_id,
                tools=list(session.selected_tools),
                history=list(session.history),
            )
        except BackendError as exc:
            LOGGER.warning(
                "dispatch.agent.failed",
                extra={"event": "dispatch.agent.failed", "error": str(exc)},
            )
            return DisplayResult(GENERIC_FAILURE)
        reply = output or EMPTY_REPLY
        session.record_agent_exchange(input_text, reply)
        return DisplayResult(reply)

    async def _chat(self, session: ChatSession) -> DisplayResult:
        try:
            payload = await self.client.chat_completion(
                session.api_messages(), session.model, max_tokens=self.max_tokens
            )
        except BackendError as exc:
            LOGGER.warning(
                "dispatch.chat.failed",
                extra={"event": "dispatch.chat.failed", "error": str(exc)},
            )
            return DisplayResult(GENERIC_FAILURE)
        return DisplayResult(BackendClient.first_choice_content(payload) or EMPTY_REPLY)


def _error_detail(exc: BackendError) -> str:
    detail = getattr(exc, "detail", None)
    return detail if isinstance(detail, str) and detail else str(exc)
