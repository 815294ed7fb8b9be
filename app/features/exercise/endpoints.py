# app/features/exercise/endpoints.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.common.deps import CurrentUser, get_current_user
from app.DB.repository import PersistenceError
from app.DB.supabase import get_supabase
from .repository import ExerciseRepository
from .schemas import (
    ResumeExerciseResponse,
    StartExerciseRequest,
    StartExerciseResponse,
    SubmitExerciseRequest,
    SubmitExerciseResponse,
)
from .service import ExerciseService

logger = logging.getLogger("exercise")

router = APIRouter(prefix="/api/exercise", tags=["exercise"])

_STATUS_MAP = {
    "practice_set_not_found": 404,
    "practice_result_not_found": 404,
    "practice_result_already_submitted": 400,
}


async def get_exercise_service(client=Depends(get_supabase)) -> ExerciseService:
    return ExerciseService(ExerciseRepository(client))


def _raise_for(exc: Exception) -> None:
    if isinstance(exc, PersistenceError):
        logger.error("exercise.persistence_failure op=%s error=%s", exc.op, exc.cause)
        raise HTTPException(status_code=500, detail="persistence_failure") from exc
    message = str(exc)
    raise HTTPException(status_code=_STATUS_MAP.get(message, 400), detail=message) from exc


@router.post(
    "/start",
    response_model=StartExerciseResponse,
    summary="Start (or resume) an exercise attempt",
    description=(
        "Creates an in_progress practice result for the caller, or returns the open one "
        "with resumed=true."
    ),
)
async def start_exercise(
    payload: StartExerciseRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ExerciseService = Depends(get_exercise_service),
):
    try:
        return await service.start(current_user.id, str(payload.practice_set_id))
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.get(
    "/resume",
    response_model=ResumeExerciseResponse,
    summary="Fetch the caller's open attempt for a practice set",
)
async def resume_exercise(
    practice_set_id: UUID = Query(..., alias="practiceSetId"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ExerciseService = Depends(get_exercise_service),
):
    try:
        return await service.resume(current_user.id, str(practice_set_id))
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.post(
    "/submit",
    response_model=SubmitExerciseResponse,
    summary="Submit a completed attempt",
    description=(
        "Completes the attempt, recomputes pass/fail against the zone threshold, updates lesson "
        "progress and grants coins/XP on the first pass. Secondary write failures are reported "
        "in warnings."
    ),
)
async def submit_exercise(
    payload: SubmitExerciseRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ExerciseService = Depends(get_exercise_service),
):
    try:
        return await service.submit(current_user.id, payload)
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)
