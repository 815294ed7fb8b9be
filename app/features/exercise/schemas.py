from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field

from app.common.schemas import CamelModel


class StartExerciseRequest(CamelModel):
	practice_set_id: UUID


class StartExerciseResponse(CamelModel):
	success: bool = True
	practice_result_id: str
	attempt_no: int
	resumed: bool


class AttemptGrade(CamelModel):
	is_correct: bool
	score: float = 0
	feedback: str = ""


class QuestionAttempt(CamelModel):
	question_id: str
	question_type: Optional[str] = None
	user_answer: Any = None
	status: Literal["answered", "skipped"] = "answered"
	time_spent_ms: int = Field(default=0, ge=0)
	grade: AttemptGrade


class SubmitExerciseRequest(CamelModel):
	practice_result_id: UUID
	practice_set_id: UUID
	score_percent: float = Field(ge=0, le=100)
	total_correct: int = Field(ge=0)
	total_incorrect: int = Field(ge=0)
	total_skipped: int = Field(default=0, ge=0)
	time_spent_seconds: int = Field(default=0, ge=0)
	attempts: List[QuestionAttempt] = Field(default_factory=list)
	# Client's own verdict; recorded in logs only, the server recomputes it.
	passed: Optional[bool] = None


class SubmitExerciseResponse(CamelModel):
	success: bool = True
	practice_result_id: str
	passed: bool
	pass_threshold: float
	is_first_pass: bool
	coins_earned: int = 0
	xp_earned: int = 0
	topic_id: Optional[int] = None
	lesson_id: Optional[int] = None
	warnings: List[str] = Field(default_factory=list)


class PracticeResultDetailSchema(CamelModel):
	id: Optional[str] = None
	question_id: Optional[int] = None
	is_correct: bool = False
	time_spent_ms: int = 0
	answer_data: Optional[Dict[str, Any]] = None
	status: str = "answered"
	created_at: Optional[str] = None


class ResumedPracticeResult(CamelModel):
	id: str
	attempt_no: int
	details: List[PracticeResultDetailSchema] = Field(default_factory=list)


class ResumeExerciseResponse(CamelModel):
	success: bool = True
	practice_result: Optional[ResumedPracticeResult] = None
