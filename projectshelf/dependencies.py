# projectshelf/dependencies.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from projectshelf.context import AppContext
from projectshelf.database import get_db
from projectshelf.errors import AuthError
from projectshelf.models.user import User
from projectshelf.services.auth import decode_token

# Security scheme. Missing headers are reported by us, not by HTTPBearer
bearer = HTTPBearer(description="ProjectShelf access token (JWT)", auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> User:
    """
    🔒 Resolve the bearer token to a user. The user id always comes from the
    signed token, never from the request body.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")

    user_id = decode_token(credentials.credentials, context.settings.jwt_secret)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthError("Not authorized, user not found")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user for public routes: a bad or missing token just means anonymous."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user_id = decode_token(credentials.credentials, context.settings.jwt_secret)
    except AuthError:
        return None
    return db.query(User).filter(User.id == user_id).first()
