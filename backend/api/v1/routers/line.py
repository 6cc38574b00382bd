"""
LINE Webhook Router — inbound chat events.

Responds 400 on a missing signature, 401 on a bad one, and 200 for every
authentic delivery, even when individual events fail: a non-2xx answer
makes the platform redeliver, which would replay orders that already
committed.
"""

import json

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.deps import get_app_settings, get_line_client, get_session_factory
from chat.dispatcher import handle_events
from chat.line_client import LineClient
from core.config import Settings
from core.security import verify_signature

logger = structlog.get_logger()

router = APIRouter(prefix="/api/line", tags=["line"])

SIGNATURE_HEADER = "x-line-signature"


@router.post("/webhook")
async def line_webhook(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    line_client: LineClient = Depends(get_line_client),
):
    """Verify the signature over the raw body, then dispatch every event."""
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        return JSONResponse({"message": "Missing signature"}, status_code=400)

    body = await request.body()
    if not verify_signature(body, settings.line_channel_secret, signature):
        logger.warning("line.invalid_signature")
        return JSONResponse({"message": "Invalid signature"}, status_code=401)

    try:
        payload = json.loads(body)
    except ValueError:
        return JSONResponse({"message": "Malformed body"}, status_code=400)

    events = payload.get("events") if isinstance(payload, dict) else None
    events = [e for e in events or [] if isinstance(e, dict)]
    failures = await handle_events(events, session_factory, line_client)
    if failures:
        logger.warning("line.events_failed", failures=failures, total=len(events))
    return {"message": "OK"}
