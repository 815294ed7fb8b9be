from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.DB.repository import PersistenceError
from app.features.learn.zones import is_passing, resolve_pass_threshold
from .repository import ExerciseRepository
from .schemas import (
    PracticeResultDetailSchema,
    QuestionAttempt,
    ResumedPracticeResult,
    ResumeExerciseResponse,
    StartExerciseResponse,
    SubmitExerciseRequest,
    SubmitExerciseResponse,
)

logger = logging.getLogger("exercise.service")

IN_PROGRESS = "in_progress"
COMPLETED = "completed"

# Warning codes returned with a successful submission when a secondary write fails.
WARN_DETAILS_NOT_SAVED = "details_not_saved"
WARN_PROGRESS_NOT_SAVED = "progress_not_saved"
WARN_REWARD_NOT_GRANTED = "reward_not_granted"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        if value is None:
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


def _question_id(raw: str) -> Optional[int]:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def weak_question_types(attempts: List[QuestionAttempt]) -> Dict[str, int]:
    """Count incorrect answers per question type."""
    counts: Dict[str, int] = {}
    for attempt in attempts:
        if attempt.grade.is_correct:
            continue
        key = attempt.question_type or "unknown"
        counts[key] = counts.get(key, 0) + 1
    return counts


def build_detail_rows(practice_result_id: str, attempts: List[QuestionAttempt]) -> List[Dict[str, Any]]:
    return [
        {
            "practice_result_id": practice_result_id,
            "question_id": _question_id(attempt.question_id),
            "is_correct": attempt.grade.is_correct,
            "time_spent_ms": attempt.time_spent_ms,
            "answer_data": {
                "userAnswer": attempt.user_answer,
                "score": attempt.grade.score,
                "feedback": attempt.grade.feedback,
            },
            "status": attempt.status,
        }
        for attempt in attempts
    ]


class ExerciseService:
    """Attempt lifecycle: ``in_progress`` -> ``completed`` (terminal).

    Service errors are ``ValueError`` codes (mapped to HTTP statuses by the
    endpoints); storage failures on the main path propagate as
    ``PersistenceError``. Secondary writes (details, lesson progress, reward)
    are best effort and surface as ``warnings`` on the response.
    """

    def __init__(self, repository: ExerciseRepository):
        self.repo = repository

    async def _load_practice_set(self, practice_set_id: str) -> Dict[str, Any]:
        practice_set = await self.repo.get_practice_set(practice_set_id)
        if not practice_set:
            raise ValueError("practice_set_not_found")
        return practice_set

    async def _pass_threshold(self, practice_set: Dict[str, Any]) -> tuple[Optional[int], float]:
        zone_level = await self.repo.get_zone_level_for_topic(practice_set.get("topic_id"))
        return zone_level, resolve_pass_threshold(zone_level, practice_set.get("pass_threshold"))

    # ------------------------------------------------------------------
    # start / resume
    # ------------------------------------------------------------------

    async def start(self, user_id: str, practice_set_id: str) -> StartExerciseResponse:
        practice_set = await self._load_practice_set(practice_set_id)

        existing = await self.repo.find_open_result(user_id, practice_set_id)
        if existing:
            logger.info("exercise.resume_existing user=%s result=%s", user_id, existing.get("id"))
            return StartExerciseResponse(
                practice_result_id=str(existing["id"]),
                attempt_no=_safe_int(existing.get("attempt_no"), default=1),
                resumed=True,
            )

        attempt_no = await self.repo.count_results(user_id, practice_set_id) + 1
        _, threshold = await self._pass_threshold(practice_set)
        row = await self.repo.insert_practice_result(
            {
                "user_id": user_id,
                "practice_set_id": practice_set_id,
                "practice_date": _now().date().isoformat(),
                "status": IN_PROGRESS,
                "attempt_no": attempt_no,
                "score_percent": 0,
                "total_correct": 0,
                "total_incorrect": 0,
                "total_skipped": 0,
                "time_spent_seconds": 0,
                "passed": False,
                "pass_criteria": {"min_accuracy": threshold, "min_correct": None},
            }
        )
        logger.info(
            "exercise.started user=%s practice_set=%s result=%s attempt_no=%d",
            user_id,
            practice_set_id,
            row.get("id"),
            attempt_no,
        )
        return StartExerciseResponse(practice_result_id=str(row["id"]), attempt_no=attempt_no, resumed=False)

    async def resume(self, user_id: str, practice_set_id: str) -> ResumeExerciseResponse:
        existing = await self.repo.find_open_result(user_id, practice_set_id)
        if not existing:
            return ResumeExerciseResponse(practice_result=None)

        try:
            details = await self.repo.list_result_details(str(existing["id"]))
        except PersistenceError as exc:
            logger.warning("exercise.resume_details_failed result=%s error=%s", existing.get("id"), exc)
            details = []

        return ResumeExerciseResponse(
            practice_result=ResumedPracticeResult(
                id=str(existing["id"]),
                attempt_no=_safe_int(existing.get("attempt_no"), default=1),
                details=[
                    PracticeResultDetailSchema(
                        id=str(row["id"]) if row.get("id") is not None else None,
                        question_id=row.get("question_id"),
                        is_correct=bool(row.get("is_correct")),
                        time_spent_ms=_safe_int(row.get("time_spent_ms")),
                        answer_data=row.get("answer_data"),
                        status=row.get("status") or "answered",
                        created_at=str(row["created_at"]) if row.get("created_at") else None,
                    )
                    for row in details
                ],
            )
        )

    # ------------------------------------------------------------------
    # submit
    # ------------------------------------------------------------------

    async def submit(self, user_id: str, payload: SubmitExerciseRequest) -> SubmitExerciseResponse:
        result_id = str(payload.practice_result_id)
        practice_set_id = str(payload.practice_set_id)
        result = await self.repo.get_practice_result(result_id, user_id)
        if not result:
            raise ValueError("practice_result_not_found")
        if str(result.get("practice_set_id")) != practice_set_id:
            raise ValueError("practice_result_not_found")
        if result.get("status") != IN_PROGRESS:
            raise ValueError("practice_result_already_submitted")

        practice_set = await self._load_practice_set(practice_set_id)
        zone_level, threshold = await self._pass_threshold(practice_set)
        passed = is_passing(payload.score_percent, threshold)
        if payload.passed is not None and payload.passed != passed:
            logger.warning(
                "exercise.client_pass_mismatch user=%s result=%s score=%s threshold=%s client=%s server=%s",
                user_id,
                result_id,
                payload.score_percent,
                threshold,
                payload.passed,
                passed,
            )

        is_first_pass = passed and not await self.repo.has_other_passed_result(
            user_id, practice_set_id, result_id
        )
        coins = _safe_int(practice_set.get("coin_reward")) if is_first_pass else 0
        xp = _safe_int(practice_set.get("xp_reward")) if is_first_pass else 0

        updated = await self.repo.complete_practice_result(
            result_id,
            {
                "score_percent": payload.score_percent,
                "total_correct": payload.total_correct,
                "total_incorrect": payload.total_incorrect,
                "total_skipped": payload.total_skipped,
                "time_spent_seconds": payload.time_spent_seconds,
                "weak_question_types": weak_question_types(payload.attempts),
                "passed": passed,
                "is_first_pass": is_first_pass,
                "coins_earned": coins,
                "xp_earned": xp,
                "updated_at": _now().isoformat(),
            },
        )
        if not updated:
            # Another request completed this attempt between the read and the write.
            raise ValueError("practice_result_already_submitted")

        logger.info(
            "exercise.submitted user=%s result=%s zone=%s score=%s threshold=%s passed=%s first_pass=%s",
            user_id,
            result_id,
            zone_level,
            payload.score_percent,
            threshold,
            passed,
            is_first_pass,
        )

        warnings: List[str] = []

        try:
            saved = await self.repo.insert_result_details(build_detail_rows(result_id, payload.attempts))
            logger.debug("exercise.details_saved result=%s count=%d", result_id, saved)
        except PersistenceError as exc:
            logger.error("exercise.details_failed result=%s error=%s", result_id, exc)
            warnings.append(WARN_DETAILS_NOT_SAVED)

        lesson_id = practice_set.get("lesson_id")
        topic_id = practice_set.get("topic_id")
        if lesson_id and topic_id:
            try:
                await self._record_lesson_progress(user_id, lesson_id, topic_id, payload.score_percent, passed, threshold)
            except PersistenceError as exc:
                logger.error("exercise.progress_failed user=%s lesson=%s error=%s", user_id, lesson_id, exc)
                warnings.append(WARN_PROGRESS_NOT_SAVED)

        if is_first_pass:
            try:
                await self.repo.award_rewards(user_id, coins, xp)
                logger.info("exercise.rewarded user=%s coins=%d xp=%d", user_id, coins, xp)
            except PersistenceError as exc:
                logger.error("exercise.reward_failed user=%s coins=%d xp=%d error=%s", user_id, coins, xp, exc)
                warnings.append(WARN_REWARD_NOT_GRANTED)

        return SubmitExerciseResponse(
            practice_result_id=result_id,
            passed=passed,
            pass_threshold=threshold,
            is_first_pass=is_first_pass,
            coins_earned=coins,
            xp_earned=xp,
            topic_id=topic_id,
            lesson_id=lesson_id,
            warnings=warnings,
        )

    async def _record_lesson_progress(
        self,
        user_id: str,
        lesson_id: Any,
        topic_id: Any,
        score_percent: float,
        passed: bool,
        threshold: float,
    ) -> None:
        now = _now().isoformat()
        existing = await self.repo.get_lesson_progress(user_id, lesson_id)

        if not existing:
            await self.repo.insert_lesson_progress(
                {
                    "user_id": user_id,
                    "lesson_id": lesson_id,
                    "topic_id": topic_id,
                    "total_attempts": 1,
                    "best_score_percent": score_percent,
                    "status": "passed" if passed else "in_progress",
                    "first_attempted_at": now,
                    "last_attempted_at": now,
                    "passed_at": now if passed else None,
                    "pass_threshold": threshold,
                }
            )
            return

        values: Dict[str, Any] = {
            "total_attempts": _safe_int(existing.get("total_attempts")) + 1,
            "last_attempted_at": now,
            "updated_at": now,
            "pass_threshold": threshold,
        }
        if score_percent > float(existing.get("best_score_percent") or 0):
            values["best_score_percent"] = score_percent
        status = existing.get("status")
        if passed and status != "passed":
            values["status"] = "passed"
            values["passed_at"] = now
        elif status == "not_started":
            values["status"] = "in_progress"
        await self.repo.update_lesson_progress(existing["id"], values)
