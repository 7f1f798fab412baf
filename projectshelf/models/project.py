from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from projectshelf.database import Base
from projectshelf.models.user import new_id, utcnow


def empty_outcomes() -> dict:
    return {"metrics": [], "testimonials": []}


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    overview = Column(Text, nullable=False)

    media_gallery = Column(JSON, default=list)  # [{type, url, caption, thumbnail}]
    timeline = Column(JSON, default=list)  # [{date, title, description}]
    tools = Column(JSON, default=list)  # [{name, icon}]
    outcomes = Column(JSON, default=empty_outcomes)  # {metrics: [...], testimonials: [...]}

    views = Column(Integer, default=0, nullable=False)
    engagement = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
