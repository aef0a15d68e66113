"""SMS gateway webhook endpoint.

Always answers 200 with a TwiML body so the gateway never retries a
delivery; see :mod:`src.services.sms_gateway` for the reply rules.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request, Response

from src.services.sms_gateway import twiml

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/twilio", tags=["sms-gateway"])


@router.post("/sms")
async def intake_sms(request: Request) -> Response:
    """Receive an inbound SMS and register it as a complaint."""
    adapter = getattr(request.app.state, "sms_intake", None)
    if adapter is None:
        logger.error("api.twilio.adapter_unavailable")
        return Response(content=twiml(), media_type="text/xml")

    form = await request.form()
    reply = await adapter.handle(form)
    return Response(content=reply, media_type="text/xml")
