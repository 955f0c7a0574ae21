"""
Gemini Relay

Calls the Gemini generateContent REST endpoint with the user's text and the
extraction contract, and hands back the raw response envelope.

DESIGN DECISION: The relay talks HTTP directly (httpx) instead of going
through an SDK. The relay server has to propagate the upstream status code
and body verbatim, and has to tell "upstream said no" apart from
"upstream said something unparseable".

Retries: one attempt by default. GeminiSettings.max_attempts > 1 enables
bounded exponential backoff on 429, 5xx and transport failures only.
"""

from datetime import date
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from talk_ledger.config import GeminiSettings
from talk_ledger.contract import build_system_prompt
from talk_ledger.relay.errors import (
    ConfigurationError,
    RelayError,
    UpstreamError,
    UpstreamFormatError,
    ValidationError,
)
from talk_ledger.relay.interface import ClassifierRelay


logger = structlog.get_logger(__name__)

MISSING_KEY_MESSAGE = "GEMINI_API_KEY 환경변수가 설정되지 않았습니다."
MISSING_TEXT_MESSAGE = "text 필드가 필요합니다."


def require_text(text: Any) -> str:
    """Return the stripped text or raise ValidationError."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(MISSING_TEXT_MESSAGE)
    return text.strip()


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, UpstreamError) and error.retryable


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class GeminiRelay(ClassifierRelay):
    """
    Relay that calls Gemini directly.

    Exactly one outbound request per attempt; no local state is kept
    between calls.
    """

    def __init__(
        self,
        settings: GeminiSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        """
        Args:
            settings: Gemini configuration (credential, model, retries)
            transport: Optional httpx transport (tests use httpx.MockTransport)
            retry_wait: Backoff between attempts when max_attempts > 1
        """
        self._settings = settings
        self._transport = transport
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=8)

    @property
    def endpoint(self) -> str:
        return (
            f"{self._settings.api_base.rstrip('/')}/models/"
            f"{self._settings.model_name}:generateContent"
        )

    def build_request_body(self, text: str, today: date) -> dict:
        """The generateContent request for one sentence."""
        generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
        if self._settings.temperature is not None:
            generation_config["temperature"] = self._settings.temperature

        return {
            "contents": [{"role": "user", "parts": [{"text": text}]}],
            "systemInstruction": {"parts": [{"text": build_system_prompt(today)}]},
            "generationConfig": generation_config,
        }

    async def forward(self, text: Any, today: Optional[date] = None) -> dict:
        """Send one sentence to Gemini and return the raw envelope."""
        api_key = self._settings.api_key
        if not api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

        clean_text = require_text(text)
        body = self.build_request_body(clean_text, today or date.today())

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "gemini_retry",
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self._post_once(api_key, body)

        raise RelayError("unreachable")  # pragma: no cover

    async def _post_once(self, api_key: str, body: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": api_key},
                    json=body,
                )
        except httpx.TimeoutException:
            raise UpstreamError(
                502,
                {"error": f"Gemini 응답 시간이 초과되었습니다 ({self._settings.request_timeout_seconds}s)."},
            )
        except httpx.RequestError as e:
            raise UpstreamError(502, {"error": f"Gemini 호출 실패: {e}"})

        if not response.is_success:
            upstream_body = _decode_body(response)
            logger.warning(
                "gemini_upstream_error",
                status_code=response.status_code,
            )
            raise UpstreamError(response.status_code, upstream_body)

        try:
            envelope = response.json()
        except ValueError:
            raise UpstreamFormatError("Gemini 응답을 JSON으로 해석할 수 없습니다.")

        if not isinstance(envelope, dict):
            raise UpstreamFormatError("Gemini 응답 형식이 올바르지 않습니다.")

        return envelope


class RelayClient(ClassifierRelay):
    """
    Relay that calls a deployed /api/gemini endpoint.

    The endpoint holds the credential; this side only needs the URL.
    Error bodies of the form {"error": ...} are mapped back onto the
    relay error types.
    """

    def __init__(
        self,
        relay_url: str,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._relay_url = relay_url
        self._timeout = timeout_seconds
        self._transport = transport

    async def forward(self, text: Any, today: Optional[date] = None) -> dict:
        clean_text = require_text(text)
        payload: dict[str, Any] = {"text": clean_text}
        if today is not None:
            payload["today"] = today.isoformat()

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self._relay_url, json=payload)
        except httpx.RequestError as e:
            raise UpstreamError(502, {"error": f"릴레이 호출 실패: {e}"})

        if not response.is_success:
            body = _decode_body(response)
            message = body.get("error") if isinstance(body, dict) else None
            if not isinstance(message, str):
                message = None
            if response.status_code == 400:
                raise ValidationError(message or MISSING_TEXT_MESSAGE)
            # The relay's own rejections carry a plain-string error;
            # Gemini failures pass through with Gemini's error object.
            if message is not None and response.status_code == ConfigurationError.status_code:
                raise ConfigurationError(message)
            if message is not None and response.status_code == UpstreamFormatError.status_code:
                raise UpstreamFormatError(message)
            raise UpstreamError(response.status_code, body, message=message)

        try:
            envelope = response.json()
        except ValueError:
            raise UpstreamFormatError("릴레이 응답을 JSON으로 해석할 수 없습니다.")

        if not isinstance(envelope, dict):
            raise UpstreamFormatError("릴레이 응답 형식이 올바르지 않습니다.")

        return envelope
