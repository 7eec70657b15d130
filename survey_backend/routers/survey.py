"""Router handling survey submission and admin result endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.database import get_db
from survey_backend.dependencies import get_current_admin, get_results_cache
from survey_backend.schemas.survey import (
    MessageResponse,
    SurveyMetrics,
    SurveyResponseRecord,
    SurveySubmission,
)
from survey_backend.services.auth_service import AdminIdentity
from survey_backend.services.survey_service import (
    SurveyService,
    SurveyStorageError,
    SurveyValidationError,
)
from survey_backend.utils.cache import ResultsCache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/survey",
    response_model=SurveyResponseRecord,
    status_code=status.HTTP_201_CREATED,
)
async def submit_survey(
    submission: SurveySubmission,
    db: AsyncSession = Depends(get_db),
) -> SurveyResponseRecord:
    """Validate and store a survey submission."""
    service = SurveyService(db)
    try:
        return await service.submit(submission)
    except SurveyValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SurveyStorageError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.get("/results", response_model=list[SurveyResponseRecord])
async def list_results(
    admin: AdminIdentity = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    cache: ResultsCache = Depends(get_results_cache),
) -> list[SurveyResponseRecord]:
    """Return every stored survey response (admin only)."""
    service = SurveyService(db)
    try:
        return await cache.get_or_load(service.list_responses)
    except SurveyStorageError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.delete("/results/{response_id}", response_model=MessageResponse)
async def delete_result(
    response_id: str,
    admin: AdminIdentity = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a stored response. Unknown ids succeed as well."""
    service = SurveyService(db)
    try:
        await service.delete_response(response_id)
    except SurveyStorageError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    logger.info(f"Admin {admin.username} deleted result {response_id}")
    return MessageResponse(message="Result deleted")


@router.get("/metrics", response_model=SurveyMetrics)
async def get_metrics(
    admin: AdminIdentity = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> SurveyMetrics:
    """Aggregate counts, feature averages and answer distributions."""
    service = SurveyService(db)
    try:
        return await service.get_metrics()
    except SurveyStorageError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
