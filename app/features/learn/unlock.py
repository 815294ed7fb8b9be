from __future__ import annotations

"""
Progressive lesson unlock rules.

	- UNLIMITED: every lesson unlocked
	- PLUS: every zone reachable, lessons unlock sequentially inside a topic
	- FREE: Beginner zone always reachable; zone N+1 opens once every topic in
	  zone N is completed; lessons unlock sequentially inside a topic

Nothing here touches storage: callers gather the tier, the previous lesson's
progress row and the previous zone's completion counts, and these functions
decide.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .zones import zone_name


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    PLUS = "PLUS"
    UNLIMITED = "UNLIMITED"


class LockReason(str, Enum):
    tier_restriction = "tier_restriction"
    previous_incomplete = "previous_incomplete"
    zone_locked = "zone_locked"
    login_required = "login_required"


PASSED = "passed"


def normalise_tier(value: Any) -> Optional[SubscriptionTier]:
    if value is None:
        return None
    if isinstance(value, SubscriptionTier):
        return value
    text = str(getattr(value, "value", value)).strip().upper()
    try:
        return SubscriptionTier(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class UnlockStatus:
    is_locked: bool
    reason: Optional[LockReason] = None
    required_action: Optional[str] = None
    completed_topics_in_prev_zone: Optional[int] = None
    total_topics_in_prev_zone: Optional[int] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.reason is not None:
            data["reason"] = self.reason.value
        return data


UNLOCKED = UnlockStatus(is_locked=False)


def _status_of(progress: Any) -> Optional[str]:
    if progress is None:
        return None
    if isinstance(progress, Mapping):
        raw = progress.get("status")
    else:
        raw = getattr(progress, "status", None)
    raw = getattr(raw, "value", raw)
    return str(raw).lower() if raw is not None else None


def _zone_complete(completed: int, total: int) -> bool:
    return total > 0 and completed >= total


def _sequential(lesson_sort_order: int, previous_lesson_progress: Any, action: str) -> UnlockStatus:
    if lesson_sort_order <= 1:
        return UNLOCKED
    if _status_of(previous_lesson_progress) != PASSED:
        return UnlockStatus(
            is_locked=True,
            reason=LockReason.previous_incomplete,
            required_action=action,
        )
    return UNLOCKED


def check_lesson_unlock(
    tier: Any,
    is_authenticated: bool,
    zone_level: int,
    lesson_sort_order: int,
    previous_lesson_progress: Any = None,
    completed_topics_in_prev_zone: int = 0,
    total_topics_in_prev_zone: int = 0,
) -> UnlockStatus:
    """Decide whether a single lesson is reachable.

    ``previous_lesson_progress`` is the progress row (mapping or object with a
    ``status``) of the lesson right before this one in its topic, or None.
    """
    if not is_authenticated:
        return UnlockStatus(
            is_locked=True,
            reason=LockReason.login_required,
            required_action="Please log in to access lessons",
        )

    resolved = normalise_tier(tier)

    if resolved is SubscriptionTier.UNLIMITED:
        return UNLOCKED

    if resolved is SubscriptionTier.PLUS:
        return _sequential(lesson_sort_order, previous_lesson_progress, "Complete the previous lesson first")

    if resolved is SubscriptionTier.FREE:
        if zone_level > 1 and not _zone_complete(completed_topics_in_prev_zone, total_topics_in_prev_zone):
            return UnlockStatus(
                is_locked=True,
                reason=LockReason.zone_locked,
                required_action=(
                    f"Complete all topics in {zone_name(zone_level - 1)} zone to unlock this zone "
                    f"({completed_topics_in_prev_zone}/{total_topics_in_prev_zone} topics completed)"
                ),
                completed_topics_in_prev_zone=completed_topics_in_prev_zone,
                total_topics_in_prev_zone=total_topics_in_prev_zone,
            )
        return _sequential(
            lesson_sort_order, previous_lesson_progress, "Complete the previous lesson in this topic first"
        )

    return UnlockStatus(
        is_locked=True,
        reason=LockReason.tier_restriction,
        required_action="Upgrade to access this lesson",
    )


def is_zone_unlocked(tier: Any, zone_level: int, completed_topics_in_prev_zone: int, total_topics_in_prev_zone: int) -> bool:
    resolved = normalise_tier(tier)
    if resolved in (SubscriptionTier.UNLIMITED, SubscriptionTier.PLUS):
        return True
    if zone_level == 1:
        return True
    return _zone_complete(completed_topics_in_prev_zone, total_topics_in_prev_zone)


def get_unlocked_lessons_in_topic(
    tier: Any,
    zone_level: int,
    lessons: Iterable[Mapping[str, Any]],
    progress_records: Iterable[Mapping[str, Any]],
    completed_topics_in_prev_zone: int = 0,
    total_topics_in_prev_zone: int = 0,
) -> set[int]:
    """Return ids of the unlocked lessons of one topic.

    Lessons are walked by ``sort_order``; unlocking stops at the first lesson
    whose predecessor has not been passed.
    """
    lessons = list(lessons)
    resolved = normalise_tier(tier)

    if resolved is SubscriptionTier.UNLIMITED:
        return {lesson["id"] for lesson in lessons}

    if resolved is SubscriptionTier.FREE and zone_level > 1:
        if not _zone_complete(completed_topics_in_prev_zone, total_topics_in_prev_zone):
            return set()

    status_by_lesson = {row.get("lesson_id"): _status_of(row) for row in progress_records}
    ordered = sorted(lessons, key=lambda lesson: lesson.get("sort_order") or 0)

    unlocked: set[int] = set()
    for idx, lesson in enumerate(ordered):
        if idx == 0:
            unlocked.add(lesson["id"])
            continue
        if status_by_lesson.get(ordered[idx - 1]["id"]) != PASSED:
            break
        unlocked.add(lesson["id"])
    return unlocked


def calculate_zone_progress_percent(completed_topics: int, total_topics: int) -> int:
    if total_topics <= 0:
        return 0
    # half-up, so 1/8 reads as 13%
    return int(math.floor(completed_topics / total_topics * 100 + 0.5))


def get_next_unlockable_zone(
    current_zone_level: int, completed_topics_in_current_zone: int, total_topics_in_current_zone: int
) -> tuple[int, bool]:
    """Return ``(next_zone_level, is_ready_to_unlock)`` for a FREE learner."""
    return current_zone_level + 1, _zone_complete(completed_topics_in_current_zone, total_topics_in_current_zone)
