"""Async client for the remote text-transformation service."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping

from .errors import ServiceUnavailableError
from .normalizer import ResponseNormalizer
from .prompts import INSTRUCTIONS, NO_GRAMMAR_ERRORS_PHRASE
from .results import (
    Misspellings,
    PlainText,
    RequestOptions,
    ServiceError,
    Suggestion,
    TransformationKind,
    TransformationRequest,
    TransformationResult,
)
from .transport import TRANSPORT_ERRORS, ClientSettings, TextServiceTransport, build_transport

__all__ = ["TextServiceClient", "ClientSettings", "AvailabilityListener"]

LOGGER = logging.getLogger(__name__)

AvailabilityListener = Callable[[bool], None]


class TextServiceClient:
    """Issues named transformations and normalizes the replies.

    The client owns the service availability flag. Listeners registered via
    :meth:`add_availability_listener` are told about transitions only.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        transport: TextServiceTransport | None = None,
        normalizer: ResponseNormalizer | None = None,
        options: RequestOptions | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport or build_transport(settings)
        self._normalizer = normalizer or ResponseNormalizer()
        self._options = options or RequestOptions()
        self._available = True
        self._availability_listeners: list[AvailabilityListener] = []

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def available(self) -> bool:
        """Whether the last exchange with the service succeeded."""

        return self._available

    def add_availability_listener(self, listener: AvailabilityListener) -> None:
        self._availability_listeners.append(listener)

    def remove_availability_listener(self, listener: AvailabilityListener) -> None:
        if listener in self._availability_listeners:
            self._availability_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Core exchange
    # ------------------------------------------------------------------
    async def invoke(self, input_text: str, instruction: str) -> Any:
        """Send ``input_text`` with ``instruction`` and return the normalized reply.

        Returns parsed JSON (object or array) or plain text. Raises
        :class:`ServiceUnavailableError` when the reply carries no response or
        the transport fails; either way the service is marked unavailable.
        """

        request = TransformationRequest(input_text=input_text, instruction=instruction, options=self._options)
        LOGGER.debug("Invoking text service (%s chars of input)", len(input_text))
        try:
            reply = await asyncio.wait_for(self._transport.send(request), timeout=self._overall_timeout())
        except asyncio.TimeoutError as exc:
            LOGGER.error("Text service timed out after %.1fs", self._overall_timeout() or 0.0)
            self._set_available(False)
            raise ServiceUnavailableError(
                message="Text service timed out",
                details={"timeout": self._overall_timeout()},
            ) from exc
        except TRANSPORT_ERRORS as exc:
            LOGGER.error("Text service error: %s", exc)
            self._set_available(False)
            raise ServiceUnavailableError(message=f"Text service request failed: {exc}") from exc
        except Exception as exc:
            LOGGER.exception("Unexpected text service failure")
            self._set_available(False)
            raise ServiceUnavailableError(
                message=f"Text service request failed: {exc}",
                details={"exception": type(exc).__name__},
            ) from exc

        response = reply.get("response") if isinstance(reply, Mapping) else None
        if not isinstance(response, str) or not response:
            LOGGER.error("Text service reply had no response field")
            self._set_available(False)
            raise ServiceUnavailableError(details=_reply_error_details(reply))

        self._set_available(True)
        return self._normalizer.normalize(response)

    # ------------------------------------------------------------------
    # Named transformations
    # ------------------------------------------------------------------
    async def check_spelling(self, text: str) -> Misspellings | PlainText | ServiceError:
        normalized = await self.invoke(text, INSTRUCTIONS[TransformationKind.SPELL_CHECK])
        if isinstance(normalized, Mapping):
            error = _structured_error(normalized)
            if error is not None:
                return error
            return Misspellings.from_mapping(normalized)
        if isinstance(normalized, list):
            return Misspellings.from_mapping({"misspelled": bool(normalized), "words": normalized})
        return PlainText(text=normalized)

    async def check_grammar(self, text: str) -> Suggestion:
        normalized = _as_text(await self.invoke(text, INSTRUCTIONS[TransformationKind.GRAMMAR_CHECK]))
        if NO_GRAMMAR_ERRORS_PHRASE in normalized:
            return Suggestion(text=None)
        return Suggestion.from_text(normalized)

    async def improve(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.IMPROVE, text)

    async def make_formal(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.FORMAL, text)

    async def make_casual(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.CASUAL, text)

    async def simplify(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.SIMPLIFY, text)

    async def expand(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.EXPAND, text)

    async def summarize(self, text: str) -> Suggestion:
        return await self._suggest(TransformationKind.SUMMARIZE, text)

    async def run(self, kind: TransformationKind | str, text: str) -> TransformationResult:
        """Dispatch ``kind`` to its named operation."""

        resolved = TransformationKind.parse(kind)
        operation = {
            TransformationKind.SPELL_CHECK: self.check_spelling,
            TransformationKind.GRAMMAR_CHECK: self.check_grammar,
            TransformationKind.IMPROVE: self.improve,
            TransformationKind.FORMAL: self.make_formal,
            TransformationKind.CASUAL: self.make_casual,
            TransformationKind.SIMPLIFY: self.simplify,
            TransformationKind.EXPAND: self.expand,
            TransformationKind.SUMMARIZE: self.summarize,
        }[resolved]
        return await operation(text)

    async def aclose(self) -> None:
        """Release the underlying transport."""

        await self._transport.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _suggest(self, kind: TransformationKind, text: str) -> Suggestion:
        normalized = await self.invoke(text, INSTRUCTIONS[kind])
        return Suggestion.from_text(_as_text(normalized))

    def _set_available(self, available: bool) -> None:
        if self._available == available:
            return
        self._available = available
        LOGGER.info("Text service marked %s", "available" if available else "unavailable")
        for listener in list(self._availability_listeners):
            listener(available)

    def _overall_timeout(self) -> float | None:
        timeout = self._settings.request_timeout
        if timeout is None:
            return None
        attempts = max(1, self._settings.max_retries)
        return timeout * attempts + self._settings.retry_max_seconds * (attempts - 1)


def _as_text(normalized: Any) -> str:
    if isinstance(normalized, str):
        return normalized
    return json.dumps(normalized, ensure_ascii=False)


def _structured_error(payload: Mapping[str, Any]) -> ServiceError | None:
    if any(key in payload for key in ("misspelled", "words")):
        return None
    error = payload.get("error")
    if isinstance(error, Mapping):
        error = error.get("info") or error.get("message") or error.get("code")
    if isinstance(error, str) and error:
        return ServiceError(message=error)
    return None


def _reply_error_details(reply: Any) -> dict[str, Any]:
    if not isinstance(reply, Mapping):
        return {}
    error = reply.get("error")
    if isinstance(error, Mapping):
        return {key: error[key] for key in ("code", "info") if key in error}
    if isinstance(error, str):
        return {"info": error}
    return {}
