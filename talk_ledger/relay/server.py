"""
Relay HTTP Server

Exposes the relay to browser front ends:

    POST    /api/gemini   {"text": "...", "today"?: "YYYY-MM-DD"}
    OPTIONS /api/gemini   -> 204

Responses:
- 200 with the classifier's raw envelope
- {"error": "..."} with 400 (bad body), 500 (missing credential),
  502 (upstream unparseable/unreachable)
- the upstream's own status and body when Gemini answers non-2xx

Every response, errors included, carries permissive CORS headers.
"""

import json
from datetime import date
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from talk_ledger.audit import configure_logging
from talk_ledger.config import GeminiSettings, get_settings
from talk_ledger.relay.errors import RelayError, UpstreamError, ValidationError
from talk_ledger.relay.gemini import GeminiRelay
from talk_ledger.relay.interface import ClassifierRelay


logger = structlog.get_logger(__name__)

RELAY_PATH = "/api/gemini"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

BODY_PARSE_MESSAGE = "요청 본문을 파싱할 수 없습니다."
BAD_TODAY_MESSAGE = "today 필드는 YYYY-MM-DD 형식이어야 합니다."


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _parse_today(raw) -> Optional[date]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(BAD_TODAY_MESSAGE)
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(BAD_TODAY_MESSAGE)


def create_relay_app(
    settings: Optional[GeminiSettings] = None,
    relay: Optional[ClassifierRelay] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Gemini configuration; loaded from the environment if None
        relay: Relay implementation; a GeminiRelay over `settings` if None
    """
    relay = relay or GeminiRelay(settings or get_settings().gemini)

    app = FastAPI(title="Talk Ledger Relay", version="1.0.0")

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.options(RELAY_PATH)
    async def relay_preflight() -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    @app.post(RELAY_PATH)
    async def relay_text(request: Request) -> Response:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error(BODY_PARSE_MESSAGE, 400)
        if not isinstance(body, dict):
            return _error(BODY_PARSE_MESSAGE, 400)

        try:
            today = _parse_today(body.get("today"))
            envelope = await relay.forward(body.get("text"), today)
        except UpstreamError as e:
            logger.warning("relay_upstream_error", status_code=e.status_code)
            content = e.body if isinstance(e.body, (dict, list)) else {"error": str(e.body)}
            return JSONResponse(content, status_code=e.status_code)
        except RelayError as e:
            logger.warning(
                "relay_rejected",
                error_type=type(e).__name__,
                status_code=e.status_code,
            )
            return _error(str(e), e.status_code)

        return JSONResponse(envelope, status_code=200)

    return app


def main() -> None:
    """Run the relay with uvicorn (talk-ledger-relay console script)."""
    settings = get_settings()
    configure_logging(settings.app.log_level)
    uvicorn.run(create_relay_app(settings.gemini), host="0.0.0.0", port=8787)


if __name__ == "__main__":
    main()
