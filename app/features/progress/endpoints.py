"""Endpoints for lesson/topic/zone progress and unlock status."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.common.deps import CurrentUser, get_current_user, get_optional_user
from app.DB.repository import PersistenceError
from app.DB.supabase import get_supabase
from .repository import ProgressRepository
from .schemas import (
    LessonProgressResponse,
    TopicOverview,
    UnlockStatusSchema,
    ZoneCompletionStats,
    ZoneProgressResponse,
)
from .service import ProgressService

logger = logging.getLogger("progress")

router = APIRouter(prefix="/api/progress", tags=["progress"])

_STATUS_MAP = {
    "lesson_not_found": 404,
    "topic_not_found": 404,
}


async def get_progress_service(client=Depends(get_supabase)) -> ProgressService:
    return ProgressService(ProgressRepository(client))


def _raise_for(exc: Exception) -> None:
    if isinstance(exc, PersistenceError):
        logger.error("progress.persistence_failure op=%s error=%s", exc.op, exc.cause)
        raise HTTPException(status_code=500, detail="persistence_failure") from exc
    message = str(exc)
    raise HTTPException(status_code=_STATUS_MAP.get(message, 400), detail=message) from exc


@router.get("/lessons/{lesson_id}", response_model=LessonProgressResponse)
async def lesson_progress(
    lesson_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return LessonProgressResponse(progress=await service.get_lesson_progress(current_user.id, lesson_id))
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.get(
    "/lessons/{lesson_id}/unlock",
    response_model=UnlockStatusSchema,
    summary="Whether the caller can open a lesson",
    description="Anonymous callers get is_locked=true with reason login_required.",
)
async def lesson_unlock_status(
    lesson_id: int,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return await service.get_lesson_unlock_status(current_user.id if current_user else None, lesson_id)
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.get("/topics/{topic_id}", response_model=TopicOverview)
async def topic_overview(
    topic_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return await service.get_topic_overview(current_user.id, topic_id)
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.get("/zones/{zone_id}", response_model=ZoneProgressResponse)
async def zone_progress(
    zone_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    try:
        return await service.get_zone_progress(current_user.id, zone_id)
    except (ValueError, PersistenceError) as exc:
        _raise_for(exc)


@router.get("/zones/{zone_id}/completion", response_model=ZoneCompletionStats)
async def zone_completion(
    zone_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_zone_completion_stats(current_user.id, zone_id)
