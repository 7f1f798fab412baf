import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from projectshelf.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # always lower-cased

    # Password is optional for accounts created through Google
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)

    profile_picture = Column(String(500), default="")
    bio = Column(Text, default="")
    social_links = Column(JSON, default=dict)  # website / github / linkedin / twitter
    selected_theme = Column(String(50), default="default")
    theme_customization = Column(JSON, default=dict)  # primary / secondary / accent color

    last_login = Column(DateTime(timezone=True), default=utcnow)
    login_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class VisitStat(Base):
    """One row per user per calendar day."""

    __tablename__ = "visit_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    count = Column(Integer, default=0, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_visit_user_day"),)


class ProjectView(Base):
    __tablename__ = "project_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    # Plain reference: deleting a project leaves the tally behind
    project_id = Column(String(32), nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    last_viewed = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "project_id", name="uq_project_view_user_project"),)
