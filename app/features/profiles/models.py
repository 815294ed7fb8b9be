from sqlalchemy import Column, String, DateTime, Integer, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy import Enum
import enum

from app.DB.base import Base


class SubscriptionType(enum.Enum):
    FREE = "FREE"
    PLUS = "PLUS"
    UNLIMITED = "UNLIMITED"


class Profile(Base):
    __tablename__ = "profiles"

    # Same uuid as auth.users.id; rows are provisioned by a Supabase trigger.
    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    subscription_type = Column(
        Enum(SubscriptionType, name="subscription_type"),
        nullable=False,
        server_default=SubscriptionType.FREE.value,
    )
    coins = Column(Integer, nullable=False, server_default="0")
    xp = Column(Integer, nullable=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    __table_args__ = (
        CheckConstraint("coins >= 0", name="check_profiles_coins_non_negative"),
        CheckConstraint("xp >= 0", name="check_profiles_xp_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Profile id={self.id} email={self.email} tier={self.subscription_type}>"
