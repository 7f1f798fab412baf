"""
Visit and project-view tallies kept on each user.

Tallies are child rows keyed by (user, day) and (user, project). Recording does
an in-place UPDATE first and only INSERTs when no row exists yet; the unique
constraint turns a concurrent double-insert into an IntegrityError, after
which the UPDATE is repeated.
"""

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from projectshelf.models.project import Project
from projectshelf.models.user import ProjectView, User, VisitStat, utcnow

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
TOP_PROJECTS = 5


def _upsert(db: Session, do_update: Callable[[], int], make_row: Callable[[], object]) -> None:
    if do_update():
        db.commit()
        return
    db.add(make_row())
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        do_update()
        db.commit()


def record_page_view(db: Session, user_id: str, today: Optional[date] = None) -> None:
    day = today or date.today()

    def do_update() -> int:
        return db.execute(
            update(VisitStat)
            .where(VisitStat.user_id == user_id, VisitStat.date == day)
            .values(count=VisitStat.count + 1)
        ).rowcount

    _upsert(db, do_update, lambda: VisitStat(user_id=user_id, date=day, count=1))


def record_project_view(db: Session, user_id: str, project_id: str) -> None:
    def do_update() -> int:
        return db.execute(
            update(ProjectView)
            .where(ProjectView.user_id == user_id, ProjectView.project_id == project_id)
            .values(view_count=ProjectView.view_count + 1, last_viewed=utcnow())
        ).rowcount

    _upsert(
        db,
        do_update,
        lambda: ProjectView(user_id=user_id, project_id=project_id, view_count=1, last_viewed=utcnow()),
    )


def record_best_effort(session_factory: sessionmaker, record: Callable, *args) -> bool:
    """
    Run a recorder in its own session so a failure can't disturb the request
    it rides along with. Errors are logged, never raised.
    """
    db = session_factory()
    try:
        record(db, *args)
        return True
    except Exception:
        logger.exception("Failed to record analytics event %s%r", record.__name__, args)
        db.rollback()
        return False
    finally:
        db.close()


def serialize_visit(stat: VisitStat) -> dict:
    return {"date": stat.date.isoformat(), "count": stat.count}


def serialize_project_view(view: ProjectView, title: Optional[str] = None) -> dict:
    return {
        "project_id": view.project_id,
        "title": title,
        "view_count": view.view_count,
        "last_viewed": view.last_viewed.isoformat() if view.last_viewed else None,
    }


def _visits(db: Session, user_id: str) -> list:
    return db.query(VisitStat).filter(VisitStat.user_id == user_id).order_by(VisitStat.id).all()


def _project_views(db: Session, user_id: str) -> list:
    """(ProjectView, title) pairs in insertion order; title is None for deleted projects."""
    return (
        db.query(ProjectView, Project.title)
        .outerjoin(Project, Project.id == ProjectView.project_id)
        .filter(ProjectView.user_id == user_id)
        .order_by(ProjectView.id)
        .all()
    )


def _login_fields(user: User) -> dict:
    return {
        "login_count": user.login_count,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


def user_analytics(db: Session, user: User) -> dict:
    return {
        **_login_fields(user),
        "visit_stats": [serialize_visit(s) for s in _visits(db, user.id)],
        "projects_viewed": [serialize_project_view(v, t) for v, t in _project_views(db, user.id)],
    }


def dashboard(db: Session, user: User, today: Optional[date] = None) -> dict:
    today = today or date.today()
    # RECENT_DAYS days including today
    cutoff = today - timedelta(days=RECENT_DAYS - 1)

    visits = _visits(db, user.id)
    total = db.query(func.coalesce(func.sum(VisitStat.count), 0)).filter(
        VisitStat.user_id == user.id
    ).scalar()

    # sorted() is stable, so equal counts keep insertion order
    viewed = sorted(_project_views(db, user.id), key=lambda pair: pair[0].view_count, reverse=True)

    return {
        "total_visits": int(total),
        "recent_visits": [serialize_visit(s) for s in visits if s.date >= cutoff],
        "top_projects": [serialize_project_view(v, t) for v, t in viewed[:TOP_PROJECTS]],
        **_login_fields(user),
    }
