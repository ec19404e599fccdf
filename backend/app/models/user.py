"""
User and UserCredits models.
Users are created on first successful sign-in and never hard-deleted.
UserCredits holds the running balance that gates image generation.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from app.models.base import Base, generate_uuid, utcnow


class User(Base):
    """Account record. `uuid` is the external handle used everywhere else."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    nickname = Column(String(255), nullable=False, default="")
    avatar_url = Column(String(1024), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    credits = Column(Integer, nullable=False, default=0)  # Snapshot of user_credits.left_credits

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    locale = Column(String(16), nullable=True)
    signin_type = Column(String(32), nullable=True)  # e.g. "oauth", "email"
    signin_provider = Column(String(64), nullable=True)  # e.g. "google.com"
    signin_openid = Column(String(255), nullable=True)  # Provider-side user id
    signin_ip = Column(String(64), nullable=True)

    invite_code = Column(String(64), nullable=False, default="")
    invited_by = Column(String(36), nullable=False, default="")
    is_affiliate = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("email", "signin_provider", name="uq_user_email_provider"),
        Index("idx_user_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}

    def __repr__(self):
        return f"<User(uuid={self.uuid}, email={self.email}, provider={self.signin_provider})>"


class UserCredits(Base):
    """Credit balance for a single user."""

    __tablename__ = "user_credits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_uuid = Column(String(36), ForeignKey("users.uuid"), nullable=False, unique=True, index=True)
    credits = Column(Integer, nullable=False, default=0)  # Total ever granted
    left_credits = Column(Integer, nullable=False, default=0)  # Remaining usable
    is_recharged = Column(Boolean, nullable=False, default=False)
    is_pro = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("left_credits >= 0", name="ck_user_credits_left_non_negative"),
    )

    def __repr__(self):
        return f"<UserCredits(user_uuid={self.user_uuid}, left={self.left_credits}/{self.credits})>"
