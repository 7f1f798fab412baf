import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from projectshelf.errors import AuthorizationError, NotFoundError, ValidationError
from projectshelf.models.project import Project, empty_outcomes
from projectshelf.services.slugs import unique_slug

logger = logging.getLogger(__name__)

# Fields a client may set on create/update; owner, slug and counters are server-managed
EDITABLE_FIELDS = ("title", "overview", "media_gallery", "timeline", "tools", "outcomes")


def list_projects(db: Session, owner_id: str) -> list:
    return (
        db.query(Project)
        .filter(Project.user_id == owner_id)
        .order_by(Project.created_at.asc())
        .all()
    )


def get_project(db: Session, project_id: str) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def get_owned_project(db: Session, project_id: str, user_id: str) -> Project:
    # Existence first, then ownership
    project = get_project(db, project_id)
    if project.user_id != user_id:
        raise AuthorizationError("User not authorized")
    return project


def _clean_title(title) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    return title


def create_project(db: Session, owner_id: str, data: dict) -> Project:
    title = _clean_title(data.get("title"))
    project = Project(
        user_id=owner_id,
        title=title,
        slug=unique_slug(db, title),
        overview=data["overview"],
        media_gallery=data.get("media_gallery") or [],
        timeline=data.get("timeline") or [],
        tools=data.get("tools") or [],
        outcomes=data.get("outcomes") or empty_outcomes(),
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("User %s created project %s (%s)", owner_id, project.id, project.slug)
    return project


def update_project(db: Session, project_id: str, user_id: str, data: dict) -> Project:
    project = get_owned_project(db, project_id, user_id)

    for field in EDITABLE_FIELDS:
        if field not in data or data[field] is None:
            continue
        if field == "title":
            title = _clean_title(data["title"])
            project.title = title
            project.slug = unique_slug(db, title, exclude_id=project.id)
        else:
            setattr(project, field, data[field])

    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project_id: str, user_id: str) -> None:
    project = get_owned_project(db, project_id, user_id)
    db.delete(project)
    db.commit()
    logger.info("User %s deleted project %s", user_id, project_id)


def _increment(db: Session, project_id: str, column) -> Project:
    result = db.execute(
        update(Project)
        .where(Project.id == project_id)
        .values({column: column + 1})
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount == 0:
        raise NotFoundError("Project not found")
    return get_project(db, project_id)


def increment_views(db: Session, project_id: str) -> Project:
    return _increment(db, project_id, Project.views)


def increment_engagement(db: Session, project_id: str) -> Project:
    return _increment(db, project_id, Project.engagement)
