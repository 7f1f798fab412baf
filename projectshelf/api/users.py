from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from projectshelf.api.projects import serialize_project
from projectshelf.context import AppContext
from projectshelf.database import get_db
from projectshelf.dependencies import get_context, get_current_user
from projectshelf.errors import NotFoundError
from projectshelf.models.user import User
from projectshelf.services import projects as project_service
from projectshelf.services import users as user_service
from projectshelf.services.analytics import record_best_effort, record_page_view

router = APIRouter(prefix="/api/users", tags=["users"])


class SocialLinks(BaseModel):
    website: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    social_links: Optional[SocialLinks] = None
    password: Optional[str] = None


class ThemeCustomization(BaseModel):
    # Colors are validated client-side
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None


class ThemeUpdate(BaseModel):
    selected_theme: Optional[str] = None
    theme_customization: Optional[ThemeCustomization] = None


def serialize_public_user(user: User) -> dict:
    """Public portfolio view: no email, no credentials, no analytics."""
    return {
        "id": user.id,
        "username": user.username,
        "bio": user.bio or "",
        "profile_picture": user.profile_picture or "",
        "social_links": user.social_links or {},
        "selected_theme": user.selected_theme,
        "theme_customization": user.theme_customization or {},
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def serialize_private_user(user: User) -> dict:
    return {
        **serialize_public_user(user),
        "email": user.email,
        "has_password": bool(user.password_hash),
        "google_linked": bool(user.google_id),
        "login_count": user.login_count,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return serialize_private_user(user)


@router.put("/profile")
def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = data.model_dump(exclude_none=True)
    user = user_service.update_profile(db, user, **fields)
    return serialize_private_user(user)


@router.put("/theme")
def update_theme(
    data: ThemeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    theme_customization = (
        data.theme_customization.model_dump(exclude_none=True)
        if data.theme_customization is not None
        else None
    )
    user = user_service.update_theme(db, user, data.selected_theme, theme_customization)
    return {
        "selected_theme": user.selected_theme,
        "theme_customization": user.theme_customization or {},
    }


@router.get("/portfolio/{username}")
def get_portfolio(
    username: str,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Public portfolio page: profile plus every project. Counts as a visit for the owner."""
    user = user_service.get_by_username(db, username)
    if not user:
        raise NotFoundError("User not found")

    payload = {
        "user": serialize_public_user(user),
        "projects": [serialize_project(p) for p in project_service.list_projects(db, user.id)],
    }
    record_best_effort(context.session_factory, record_page_view, user.id)
    return payload


@router.get("/{username}")
def get_public_user(username: str, db: Session = Depends(get_db)):
    user = user_service.get_by_username(db, username)
    if not user:
        raise NotFoundError("User not found")
    return serialize_public_user(user)
