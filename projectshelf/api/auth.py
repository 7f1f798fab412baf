import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from projectshelf.context import AppContext
from projectshelf.database import get_db
from projectshelf.dependencies import get_context
from projectshelf.errors import FederationUnavailableError, UpstreamError, ValidationError
from projectshelf.models.user import User
from projectshelf.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=auth_service.PASSWORD_MIN_LENGTH)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    id: str
    username: str
    email: str
    token: str


def auth_response(user: User, context: AppContext) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        token=auth_service.create_token(
            user.id, context.settings.jwt_secret, context.settings.jwt_expires_days
        ),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    user = auth_service.register_user(db, data.username, data.email, data.password)
    return auth_response(user, context)


@router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    user = auth_service.authenticate(db, data.email, data.password)
    return auth_response(user, context)


# Google sign-in. create_app mounts exactly one of these two routers depending
# on whether the context carries an OAuth provider.

google_router = APIRouter(prefix="/api/auth", tags=["auth"])


@google_router.get("/google")
def google_login(context: AppContext = Depends(get_context)):
    return RedirectResponse(context.oauth.authorization_url())


def client_redirect(context: AppContext, path: str, **params) -> RedirectResponse:
    return RedirectResponse(f"{context.settings.client_url.rstrip('/')}{path}?{urlencode(params)}")


@google_router.get("/google/callback")
def google_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """
    Finish Google sign-in. The browser always ends up back on the frontend:
    /auth/success with a token, or /login when Google didn't give us a user.
    """
    if error or not code:
        logger.info("Google sign-in aborted: %s", error or "no authorization code")
        return client_redirect(context, "/login", error="google_auth_failed")

    try:
        profile = context.oauth.fetch_profile(code)
        user = auth_service.federated_login(db, profile)
    except (UpstreamError, ValidationError) as e:
        logger.warning("Google sign-in failed: %s", e.detail)
        return client_redirect(context, "/login", error="google_auth_failed")

    token = auth_service.create_token(
        user.id, context.settings.jwt_secret, context.settings.jwt_expires_days
    )
    return client_redirect(context, "/auth/success", token=token)


google_disabled_router = APIRouter(prefix="/api/auth", tags=["auth"])


@google_disabled_router.get("/google")
@google_disabled_router.get("/google/callback")
def google_unavailable():
    raise FederationUnavailableError()
