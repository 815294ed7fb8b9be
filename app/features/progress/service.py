from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.DB.repository import PersistenceError
from app.features.learn.unlock import (
    SubscriptionTier,
    calculate_zone_progress_percent,
    check_lesson_unlock,
    get_unlocked_lessons_in_topic,
    normalise_tier,
)
from app.features.learn.zones import normalise_zone_level
from .repository import ProgressRepository
from .schemas import (
    LessonProgressSchema,
    TopicOverview,
    UnlockStatusSchema,
    ZoneCompletionStats,
    ZoneProgressResponse,
)

logger = logging.getLogger("progress.service")


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def to_progress_schema(row: Dict[str, Any]) -> LessonProgressSchema:
    return LessonProgressSchema(
        id=_opt_str(row.get("id")),
        user_id=str(row.get("user_id")),
        lesson_id=int(row["lesson_id"]),
        topic_id=int(row["topic_id"]),
        best_score_percent=float(row.get("best_score_percent") or 0),
        total_attempts=int(row.get("total_attempts") or 0),
        pass_threshold=row.get("pass_threshold"),
        status=str(row.get("status") or "not_started"),
        first_attempted_at=_opt_str(row.get("first_attempted_at")),
        last_attempted_at=_opt_str(row.get("last_attempted_at")),
        passed_at=_opt_str(row.get("passed_at")),
    )


def count_completed_topics(topic_ids: List[Any], lessons: List[Dict[str, Any]], passed: List[Dict[str, Any]]) -> int:
    """A topic is completed when it has lessons and every one of them is passed."""
    lessons_by_topic: Dict[Any, set] = {topic_id: set() for topic_id in topic_ids}
    for lesson in lessons:
        if lesson.get("topic_id") in lessons_by_topic:
            lessons_by_topic[lesson["topic_id"]].add(lesson["id"])
    passed_ids = {row.get("lesson_id") for row in passed}
    return sum(1 for ids in lessons_by_topic.values() if ids and ids <= passed_ids)


class ProgressService:
    def __init__(self, repository: ProgressRepository):
        self.repo = repository

    async def get_subscription_tier(self, user_id: str) -> SubscriptionTier:
        try:
            raw = await self.repo.get_subscription_type(user_id)
        except PersistenceError as exc:
            logger.warning("progress.tier_lookup_failed user=%s error=%s", user_id, exc)
            raw = None
        return normalise_tier(raw) or SubscriptionTier.FREE

    async def get_lesson_progress(self, user_id: str, lesson_id: int) -> Optional[LessonProgressSchema]:
        row = await self.repo.get_lesson_progress(user_id, lesson_id)
        return to_progress_schema(row) if row else None

    async def get_topic_progress(self, user_id: str, topic_id: int) -> List[LessonProgressSchema]:
        rows = await self.repo.list_progress_for_topics(user_id, [topic_id])
        return [to_progress_schema(row) for row in sorted(rows, key=lambda r: r.get("lesson_id") or 0)]

    async def get_zone_progress(self, user_id: str, zone_id: int) -> ZoneProgressResponse:
        topic_ids = await self.repo.list_topic_ids_in_zone(zone_id)
        rows = await self.repo.list_progress_for_topics(user_id, topic_ids)
        return ZoneProgressResponse(zone_id=zone_id, progress=[to_progress_schema(row) for row in rows])

    async def get_zone_completion_stats(self, user_id: str, zone_id: Any) -> ZoneCompletionStats:
        """Completed-topic count vs total-topic count for a zone.

        Read failures degrade to zero completed topics rather than erroring,
        so a flaky read can only ever keep a zone locked.
        """
        try:
            topic_ids = await self.repo.list_topic_ids_in_zone(zone_id)
        except PersistenceError as exc:
            logger.warning("progress.zone_topics_failed zone=%s error=%s", zone_id, exc)
            return ZoneCompletionStats(completed=0, total=0)

        total = len(topic_ids)
        if total == 0:
            return ZoneCompletionStats(completed=0, total=0)

        try:
            lessons = await self.repo.list_lessons_for_topics(topic_ids)
            passed = await self.repo.list_passed_lessons(user_id, [lesson["id"] for lesson in lessons])
        except PersistenceError as exc:
            logger.warning("progress.zone_lessons_failed zone=%s user=%s error=%s", zone_id, user_id, exc)
            return ZoneCompletionStats(completed=0, total=total)

        completed = count_completed_topics(topic_ids, lessons, passed)
        return ZoneCompletionStats(
            completed=completed,
            total=total,
            percent=calculate_zone_progress_percent(completed, total),
        )

    async def _previous_zone_stats(self, user_id: str, zone_level: int) -> ZoneCompletionStats:
        if zone_level <= 1:
            return ZoneCompletionStats()
        previous = await self.repo.get_zone_by_level(zone_level - 1)
        if not previous:
            return ZoneCompletionStats()
        return await self.get_zone_completion_stats(user_id, previous["id"])

    async def _zone_level_for_topic(self, topic_id: Any) -> int:
        topic = await self.repo.get_topic(topic_id)
        if not topic:
            raise ValueError("topic_not_found")
        zone = await self.repo.get_zone(topic.get("zone_id")) if topic.get("zone_id") is not None else None
        return normalise_zone_level(zone.get("level") if zone else None)

    async def get_lesson_unlock_status(self, user_id: Optional[str], lesson_id: int) -> UnlockStatusSchema:
        if user_id is None:
            status = check_lesson_unlock(None, False, 1, 1)
            return UnlockStatusSchema(**status.to_dict())

        lesson = await self.repo.get_lesson(lesson_id)
        if not lesson:
            raise ValueError("lesson_not_found")
        zone_level = await self._zone_level_for_topic(lesson["topic_id"])
        sort_order = lesson.get("sort_order") or 0

        # Position within the topic, 1-based, whatever numbering sort_order uses.
        siblings = await self.repo.list_lessons_for_topics([lesson["topic_id"]])
        earlier = [s for s in siblings if (s.get("sort_order") or 0) < sort_order]
        position = len(earlier) + 1
        previous_progress = None
        if earlier:
            previous = max(earlier, key=lambda s: s.get("sort_order") or 0)
            previous_progress = await self.repo.get_lesson_progress(user_id, previous["id"])

        tier = await self.get_subscription_tier(user_id)
        prev_zone = await self._previous_zone_stats(user_id, zone_level) if tier is SubscriptionTier.FREE else ZoneCompletionStats()

        status = check_lesson_unlock(
            tier,
            True,
            zone_level,
            position,
            previous_progress,
            prev_zone.completed,
            prev_zone.total,
        )
        return UnlockStatusSchema(**status.to_dict())

    async def get_topic_overview(self, user_id: str, topic_id: int) -> TopicOverview:
        zone_level = await self._zone_level_for_topic(topic_id)
        lessons = await self.repo.list_lessons_for_topics([topic_id])
        rows = await self.repo.list_progress_for_topics(user_id, [topic_id])
        tier = await self.get_subscription_tier(user_id)
        prev_zone = await self._previous_zone_stats(user_id, zone_level) if tier is SubscriptionTier.FREE else ZoneCompletionStats()

        unlocked = get_unlocked_lessons_in_topic(
            tier,
            zone_level,
            lessons,
            rows,
            prev_zone.completed,
            prev_zone.total,
        )
        lesson_ids = {lesson["id"] for lesson in lessons}
        passed = sum(1 for row in rows if row.get("status") == "passed" and row.get("lesson_id") in lesson_ids)
        return TopicOverview(
            topic_id=topic_id,
            zone_level=zone_level,
            progress=[to_progress_schema(row) for row in rows],
            unlocked_lesson_ids=sorted(unlocked),
            passed_lessons=passed,
            total_lessons=len(lessons),
            percent=calculate_zone_progress_percent(passed, len(lessons)),
        )
