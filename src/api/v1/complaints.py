"""Structured complaint API endpoints.

Create, read and delete complaints.  Services raise classified
:class:`~src.services.errors.IntakeError` subclasses; the application's
exception handler turns those into ``{"success": false, "error": ...}``
responses with the matching status code.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, HTTPException, Request

from src.models.complaint import ComplaintSubmission

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/complaints", tags=["complaints"])


def _service(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail="Complaint service not available")
    return service


@router.post("", status_code=201)
async def create_complaint(
    request: Request,
    body: Any = Body(None),
) -> dict:
    """Register a complaint submitted through the structured API.

    Any JSON body is accepted; a body that is not an object is treated as
    empty. Returns 400 for invalid input and 409 when the channel's
    source message/call id has already been recorded.
    """
    writer = _service(request, "complaint_writer")
    submission = ComplaintSubmission.model_validate(body) if isinstance(body, dict) else ComplaintSubmission()
    complaint = await writer.create(submission)
    return {"success": True, "data": complaint.model_dump()}


@router.get("/{complaint_no}")
async def read_complaint(complaint_no: str, request: Request) -> dict:
    """Fetch a complaint by its public number, with media and timeline."""
    reader = _service(request, "complaint_reader")
    aggregate = await reader.get(complaint_no)
    return {"success": True, "data": aggregate.to_payload()}


@router.delete("/{complaint_id}")
async def delete_complaint(complaint_id: str, request: Request) -> dict:
    remover = _service(request, "complaint_remover")
    removed = await remover.remove(complaint_id)
    return {
        "success": True,
        "message": "Complaint deleted successfully",
        "data": removed,
    }
