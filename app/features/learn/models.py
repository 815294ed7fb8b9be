from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid

from app.DB.base import Base


class LessonStatus(enum.Enum):
    draft = "draft"
    published = "published"


class ProgressStatus(enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    passed = "passed"


class PracticeResultStatus(enum.Enum):
    in_progress = "in_progress"
    completed = "completed"


class Zone(Base):
    __tablename__ = "zones"

    id = Column(Integer, primary_key=True)
    level = Column(Integer, nullable=False, unique=True, index=True)  # 1 = Beginner
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    topics = relationship("Topic", back_populates="zone")


class Topic(Base):
    __tablename__ = "topics"

    topic_id = Column(Integer, primary_key=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, server_default="1")

    zone = relationship("Zone", back_populates="topics")
    lessons = relationship("Lesson", back_populates="topic", order_by="Lesson.sort_order")


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True)
    topic_id = Column(Integer, ForeignKey("topics.topic_id"), nullable=False, index=True)
    slug = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False)
    status = Column(Enum(LessonStatus, name="lesson_status"), nullable=False, default=LessonStatus.draft)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    topic = relationship("Topic", back_populates="lessons")
    __table_args__ = (
        UniqueConstraint("topic_id", "sort_order", name="uq_lessons_topic_sort_order"),
        UniqueConstraint("topic_id", "slug", name="uq_lessons_topic_slug"),
    )


class PracticeSet(Base):
    __tablename__ = "practice_sets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=True, index=True)
    topic_id = Column(Integer, ForeignKey("topics.topic_id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    coin_reward = Column(Integer, nullable=False, server_default="0")
    xp_reward = Column(Integer, nullable=False, server_default="0")
    pass_threshold = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, server_default="true")
    status = Column(String(20), nullable=False, server_default="ACTIVE")
    sequence_order = Column(Integer, nullable=False, server_default="1")


class PracticeResult(Base):
    __tablename__ = "practice_results"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    practice_set_id = Column(UUID(as_uuid=True), ForeignKey("practice_sets.id"), nullable=False, index=True)
    practice_date = Column(Date, nullable=False)
    status = Column(
        Enum(PracticeResultStatus, name="practice_result_status"),
        nullable=False,
        default=PracticeResultStatus.in_progress,
        index=True,
    )
    attempt_no = Column(Integer, nullable=False, server_default="1")
    score_percent = Column(Float, nullable=False, server_default="0")
    total_correct = Column(Integer, nullable=False, server_default="0")
    total_incorrect = Column(Integer, nullable=False, server_default="0")
    total_skipped = Column(Integer, nullable=False, server_default="0")
    time_spent_seconds = Column(Integer, nullable=False, server_default="0")
    passed = Column(Boolean, nullable=False, server_default="false")
    is_first_pass = Column(Boolean, nullable=False, server_default="false")
    coins_earned = Column(Integer, nullable=False, server_default="0")
    xp_earned = Column(Integer, nullable=False, server_default="0")
    weak_question_types = Column(JSONB, nullable=True)
    pass_criteria = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    details = relationship("PracticeResultDetail", back_populates="practice_result")
    __table_args__ = (
        CheckConstraint("score_percent >= 0 AND score_percent <= 100", name="check_practice_results_score_range"),
        Index(
            "uq_practice_results_first_pass",
            "user_id",
            "practice_set_id",
            unique=True,
            postgresql_where=text("is_first_pass"),
        ),
    )


class PracticeResultDetail(Base):
    __tablename__ = "practice_result_details"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_result_id = Column(
        UUID(as_uuid=True), ForeignKey("practice_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id = Column(Integer, nullable=True)
    is_correct = Column(Boolean, nullable=False, server_default="false")
    time_spent_ms = Column(Integer, nullable=False, server_default="0")
    answer_data = Column(JSONB, nullable=True)
    status = Column(String(20), nullable=False, server_default="answered")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    practice_result = relationship("PracticeResult", back_populates="details")


class UserLessonProgress(Base):
    __tablename__ = "user_lesson_progress"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False, index=True)
    topic_id = Column(Integer, ForeignKey("topics.topic_id"), nullable=False, index=True)
    best_score_percent = Column(Float, nullable=False, server_default="0")
    total_attempts = Column(Integer, nullable=False, server_default="0")
    pass_threshold = Column(Float, nullable=True)
    status = Column(
        Enum(ProgressStatus, name="lesson_progress_status"),
        nullable=False,
        default=ProgressStatus.not_started,
    )
    first_attempted_at = Column(DateTime(timezone=True), nullable=True)
    last_attempted_at = Column(DateTime(timezone=True), nullable=True)
    passed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson_progress_user_lesson"),
    )
