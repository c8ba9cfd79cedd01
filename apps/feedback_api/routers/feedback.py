from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from packages.shared.schemas.feedback import FeedbackCreatedResponse, FeedbackRecord

from apps.feedback_api.deps import get_feedback_service
from apps.feedback_api.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("", status_code=201, response_model=FeedbackCreatedResponse)
async def submit_feedback(
    request: Request,
    svc: FeedbackService = Depends(get_feedback_service),
) -> FeedbackCreatedResponse:
    # Cuerpo en crudo: llega como application/json o text/plain según el conector.
    raw = await request.body()
    record = await svc.submit(raw)
    return FeedbackCreatedResponse(data=record)


@router.get("", response_model=list[FeedbackRecord])
async def list_feedback(svc: FeedbackService = Depends(get_feedback_service)) -> list[FeedbackRecord]:
    return await svc.list_all()
