# Import all models here so Alembic can discover them
from app.DB.base import Base

# Profiles first (referenced by progress and results)
from app.features.profiles.models import Profile
from app.features.learn.models import (
    Lesson,
    PracticeResult,
    PracticeResultDetail,
    PracticeSet,
    Topic,
    UserLessonProgress,
    Zone,
)

# This ensures all models are registered with SQLAlchemy
__all__ = [
    "Base",
    "Profile",
    "Zone",
    "Topic",
    "Lesson",
    "PracticeSet",
    "PracticeResult",
    "PracticeResultDetail",
    "UserLessonProgress",
]
