from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from projectshelf.database import get_db
from projectshelf.dependencies import get_current_user
from projectshelf.models.user import User
from projectshelf.services import analytics as analytics_service
from projectshelf.services import projects as project_service

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/user")
def get_user_analytics(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return analytics_service.user_analytics(db, user)


@router.post("/page-view")
def record_page_view(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    analytics_service.record_page_view(db, user.id)
    return {"message": "Page view recorded"}


@router.post("/project-view/{project_id}")
def record_project_view(
    project_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project_service.get_project(db, project_id)
    analytics_service.record_project_view(db, user.id, project_id)
    return {"message": "Project view recorded"}


@router.get("/dashboard")
def get_dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Totals, the last 30 days of visits and the five most viewed projects."""
    return analytics_service.dashboard(db, user)
