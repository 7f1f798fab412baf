from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from projectshelf.context import AppContext
from projectshelf.database import get_db
from projectshelf.dependencies import get_context, get_current_user, get_optional_user
from projectshelf.models.project import Project
from projectshelf.models.user import User
from projectshelf.services import projects as project_service
from projectshelf.services.analytics import record_best_effort, record_project_view

router = APIRouter(prefix="/api/projects", tags=["projects"])


# --- Content blocks ---

class MediaItem(BaseModel):
    type: Literal["image", "video"]
    url: str
    caption: Optional[str] = None
    thumbnail: Optional[str] = None
    public_id: Optional[str] = None


class TimelineEntry(BaseModel):
    date: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None


class Tool(BaseModel):
    name: str
    icon: Optional[str] = None


class Metric(BaseModel):
    label: str
    value: str


class Testimonial(BaseModel):
    content: str
    author: Optional[str] = None
    role: Optional[str] = None


class Outcomes(BaseModel):
    metrics: List[Metric] = Field(default_factory=list)
    testimonials: List[Testimonial] = Field(default_factory=list)


class ProjectCreate(BaseModel):
    # Unknown keys (user, slug, analytics...) are ignored
    title: str = Field(..., min_length=1, max_length=255)
    overview: str
    media_gallery: List[MediaItem] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    tools: List[Tool] = Field(default_factory=list)
    outcomes: Outcomes = Field(default_factory=Outcomes)


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    overview: Optional[str] = None
    media_gallery: Optional[List[MediaItem]] = None
    timeline: Optional[List[TimelineEntry]] = None
    tools: Optional[List[Tool]] = None
    outcomes: Optional[Outcomes] = None


def serialize_analytics(project: Project) -> dict:
    return {"views": project.views, "engagement": project.engagement}


def serialize_project(project: Project) -> dict:
    """Convert a Project row to its JSON shape"""
    return {
        "id": project.id,
        "user": project.user_id,
        "title": project.title,
        "slug": project.slug,
        "overview": project.overview,
        "media_gallery": project.media_gallery or [],
        "timeline": project.timeline or [],
        "tools": project.tools or [],
        "outcomes": project.outcomes or {"metrics": [], "testimonials": []},
        "analytics": serialize_analytics(project),
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def serialize_creator(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "profile_picture": user.profile_picture,
        "bio": user.bio,
        "social_links": user.social_links or {},
        "selected_theme": user.selected_theme,
    }


def count_view(context: AppContext, db: Session, project: Project, viewer: Optional[User]) -> Project:
    """Bump the view counter unless it's the owner and owner views are switched off."""
    if not context.settings.count_owner_views and viewer is not None and viewer.id == project.user_id:
        return project
    return project_service.increment_views(db, project.id)


@router.get("")
def list_projects(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Projects of the signed-in user only"""
    return [serialize_project(p) for p in project_service.list_projects(db, user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a project. 🔒 The owner is always the token's user, never a body field.
    """
    project = project_service.create_project(db, user.id, data.model_dump(mode="json"))
    return serialize_project(project)


@router.get("/{project_id}")
def get_project(
    project_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    project = project_service.get_project(db, project_id)
    project = count_view(context, db, project, viewer)
    return serialize_project(project)


@router.get("/{project_id}/public")
def get_public_project(
    project_id: str,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Project plus its creator, for the public project page."""
    project = project_service.get_project(db, project_id)
    creator = db.query(User).filter(User.id == project.user_id).first()
    payload = {
        "project": serialize_project(project),
        "creator": serialize_creator(creator) if creator else None,
    }
    # Feeds the creator's dashboard; never fails the page
    record_best_effort(context.session_factory, record_project_view, project.user_id, project.id)
    return payload


@router.put("/{project_id}")
def update_project(
    project_id: str,
    data: ProjectUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = project_service.update_project(
        db, project_id, user.id, data.model_dump(mode="json", exclude_unset=True)
    )
    return serialize_project(project)


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project_service.delete_project(db, project_id, user.id)
    return {"message": "Project removed"}


@router.put("/{project_id}/engagement")
def increment_engagement(project_id: str, db: Session = Depends(get_db)):
    project = project_service.increment_engagement(db, project_id)
    return serialize_analytics(project)


@router.post("/{project_id}/analytics/view")
def record_view(
    project_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    project = project_service.get_project(db, project_id)
    project = count_view(context, db, project, viewer)
    return serialize_analytics(project)


@router.post("/{project_id}/analytics/engage")
def record_engagement(project_id: str, db: Session = Depends(get_db)):
    project = project_service.increment_engagement(db, project_id)
    return serialize_analytics(project)
