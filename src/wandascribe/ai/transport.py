"""Transports carrying transformation requests to the remote text service."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Protocol

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError, RateLimitError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from .results import TransformationRequest

__all__ = [
    "ClientSettings",
    "TextServiceTransport",
    "MediaWikiTransport",
    "OpenAITransport",
    "build_transport",
    "BACKEND_CHOICES",
    "TRANSPORT_ERRORS",
]

LOGGER = logging.getLogger(__name__)
BACKEND_CHOICES: tuple[str, ...] = ("mediawiki", "openai")
_MEDIAWIKI_ACTION = "wandachat"
# Failures the client reports as an unreachable service.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (httpx.HTTPError, APIError, json.JSONDecodeError)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to reach the text service."""

    base_url: str
    backend: str = "mediawiki"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


class TextServiceTransport(Protocol):
    """Sends one request and returns the decoded reply mapping."""

    async def send(self, request: TransformationRequest) -> Mapping[str, Any]:
        ...

    async def aclose(self) -> None:
        ...


def _is_transient_http_error(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return False


def _is_transient_openai_error(exc: BaseException) -> bool:
    if isinstance(exc, (APIConnectionError, RateLimitError, httpx.TimeoutException)):
        return True
    if isinstance(exc, APIStatusError):
        return exc.status_code >= 500
    return False


def _retrying(settings: ClientSettings, predicate) -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, settings.max_retries)),
        wait=wait_exponential(
            multiplier=settings.retry_min_seconds,
            max=settings.retry_max_seconds,
        ),
        retry=retry_if_exception(predicate),
    )


class MediaWikiTransport:
    """Posts requests to a MediaWiki ``api.php`` exposing the ``wandachat`` action."""

    def __init__(self, settings: ClientSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            timeout=settings.request_timeout,
            headers=dict(settings.default_headers or {}),
        )

    @staticmethod
    def build_form(request: TransformationRequest) -> Dict[str, str]:
        options = request.options
        form = {
            "action": _MEDIAWIKI_ACTION,
            "format": "json",
            "message": request.input_text,
            "customprompt": request.instruction,
            "temperature": _format_number(options.temperature),
            "maxtokens": str(int(options.max_tokens)),
        }
        # MediaWiki boolean parameters are true when present.
        if options.skip_knowledge_query:
            form["skipesquery"] = "1"
        if options.use_public_knowledge:
            form["usepublicknowledge"] = "1"
        return form

    async def send(self, request: TransformationRequest) -> Mapping[str, Any]:
        form = self.build_form(request)
        if self._settings.debug_logging:
            LOGGER.debug("Text service request:\n%s", json.dumps(form, ensure_ascii=False, indent=2))
        async for attempt in _retrying(self._settings, _is_transient_http_error):
            with attempt:
                response = await self._client.post(self._settings.base_url, data=form)
                response.raise_for_status()
                payload = response.json()
        if not isinstance(payload, Mapping):
            LOGGER.debug("Ignoring non-mapping payload of type %s", type(payload))
            return {}
        return payload

    async def aclose(self) -> None:
        await self._client.aclose()


class OpenAITransport:
    """Maps requests onto an OpenAI-compatible chat completion endpoint."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or AsyncOpenAI(
            api_key=settings.api_key or None,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            default_headers=dict(settings.default_headers) if settings.default_headers else None,
        )

    def build_payload(self, request: TransformationRequest) -> Dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": request.instruction},
                {"role": "user", "content": request.input_text},
            ],
            "temperature": request.options.temperature,
            "max_tokens": request.options.max_tokens,
        }

    async def send(self, request: TransformationRequest) -> Mapping[str, Any]:
        payload = self.build_payload(request)
        LOGGER.debug("Requesting chat completion via %s", self._settings.model)
        async for attempt in _retrying(self._settings, _is_transient_openai_error):
            with attempt:
                completion = await self._client.chat.completions.create(**payload)
        choices = getattr(completion, "choices", None) or []
        if not choices:
            return {}
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        return {"response": content} if content else {}

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def build_transport(settings: ClientSettings) -> TextServiceTransport:
    """Return the transport matching ``settings.backend``."""

    backend = (settings.backend or "").strip().lower()
    if backend == "openai":
        return OpenAITransport(settings)
    if backend == "mediawiki":
        return MediaWikiTransport(settings)
    raise ValueError(f"Unsupported text service backend: {settings.backend!r}")


def _format_number(value: float) -> str:
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)
