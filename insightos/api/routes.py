import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from insightos.config import Settings, get_settings
from insightos.copilot.fallback import FALLBACK_RESPONSE, upstream_failure_status
from insightos.copilot.llm import create_chat_model, prime_stream
from insightos.copilot.pipeline import relay_model_stream
from insightos.copilot.request_codec import RequestDecodeError, build_messages, decode_request

logger = logging.getLogger(__name__)

router = APIRouter()


def get_model_factory() -> Callable[[Settings], Any]:
    """Dependency returning the chat model constructor; overridden in tests."""
    return create_chat_model


def _fallback(status_code: int) -> JSONResponse:
    return JSONResponse(FALLBACK_RESPONSE.to_wire(), status_code=status_code)


# ---------------------------------------------------------------------------
# POST /api/ai  (NDJSON streaming)
# ---------------------------------------------------------------------------

@router.post("/api/ai")
async def copilot_query(
    request: Request,
    settings: Settings = Depends(get_settings),
    model_factory: Callable[[Settings], Any] = Depends(get_model_factory),
):
    """
    Stream a copilot answer as newline-delimited JSON.

    Event sequence:
      token (×N) → done

    Failures before the stream starts return the fallback body with 503
    (configuration missing), 429 (provider rate limit) or 502 (provider
    error). A malformed request gets a 400 error envelope.
    """
    # ── 1. Configuration ───────────────────────────────────────────────
    missing = settings.missing()
    if missing:
        logger.error("Copilot unavailable, missing configuration: %s", ", ".join(missing))
        return _fallback(503)

    # ── 2. Request body ────────────────────────────────────────────────
    try:
        body = decode_request(await request.body())
    except RequestDecodeError as exc:
        logger.info("Rejected copilot request: %s", exc.message)
        return JSONResponse(exc.to_dict(), status_code=400)

    # ── 3. Open the model stream ───────────────────────────────────────
    try:
        llm = model_factory(settings)
        chunks = await prime_stream(llm.astream(build_messages(body)))
    except Exception as exc:
        status_code = upstream_failure_status(exc)
        if status_code == 500:
            logger.exception("Unexpected error opening model stream")
        else:
            logger.error("Provider error (HTTP %d): %s", status_code, exc)
        return _fallback(status_code)

    return StreamingResponse(
        relay_model_stream(chunks),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
