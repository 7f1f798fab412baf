from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projectshelf.errors import ValidationError
from projectshelf.models.user import User
from projectshelf.services.auth import check_password_length, hash_password, normalize_email


def get_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def update_profile(
    db: Session,
    user: User,
    username: Optional[str] = None,
    email: Optional[str] = None,
    bio: Optional[str] = None,
    profile_picture: Optional[str] = None,
    social_links: Optional[dict] = None,
    password: Optional[str] = None,
) -> User:
    """Partial update: anything left as None keeps its current value."""
    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationError("Username is required")
        if username != user.username:
            if db.query(User.id).filter(User.username == username).first():
                raise ValidationError("Username is already taken")
            user.username = username

    if email is not None:
        email = normalize_email(email)
        if email != user.email:
            if db.query(User.id).filter(User.email == email).first():
                raise ValidationError("Email is already registered")
            user.email = email

    if bio is not None:
        user.bio = bio
    if profile_picture is not None:
        user.profile_picture = profile_picture
    if social_links is not None:
        # Merge so a partial link set doesn't wipe the others
        user.social_links = {**(user.social_links or {}), **social_links}

    if password:
        check_password_length(password)
        user.password_hash = hash_password(password)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Username or email is already taken")
    db.refresh(user)
    return user


def update_theme(
    db: Session,
    user: User,
    selected_theme: Optional[str] = None,
    theme_customization: Optional[dict] = None,
) -> User:
    if selected_theme:
        user.selected_theme = selected_theme
    if theme_customization is not None:
        user.theme_customization = theme_customization
    db.commit()
    db.refresh(user)
    return user
