from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from app.common.schemas import CamelModel


class LessonProgressSchema(CamelModel):
    id: Optional[str] = None
    user_id: str
    lesson_id: int
    topic_id: int
    best_score_percent: float = 0
    total_attempts: int = 0
    pass_threshold: Optional[float] = None
    status: str = "not_started"
    first_attempted_at: Optional[str] = None
    last_attempted_at: Optional[str] = None
    passed_at: Optional[str] = None


class ZoneCompletionStats(CamelModel):
    completed: int = 0
    total: int = 0
    percent: int = 0


class UnlockStatusSchema(CamelModel):
    is_locked: bool
    reason: Optional[str] = None
    required_action: Optional[str] = None
    completed_topics_in_prev_zone: Optional[int] = None
    total_topics_in_prev_zone: Optional[int] = None


class LessonProgressResponse(CamelModel):
    success: bool = True
    progress: Optional[LessonProgressSchema] = None


class TopicOverview(CamelModel):
    success: bool = True
    topic_id: int
    zone_level: int
    progress: List[LessonProgressSchema] = Field(default_factory=list)
    unlocked_lesson_ids: List[int] = Field(default_factory=list)
    passed_lessons: int = 0
    total_lessons: int = 0
    percent: int = 0


class ZoneProgressResponse(CamelModel):
    success: bool = True
    zone_id: int
    progress: List[LessonProgressSchema] = Field(default_factory=list)
