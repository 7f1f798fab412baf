import hashlib
import hmac
import logging
import random
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projectshelf.errors import AuthError, ValidationError
from projectshelf.models.user import User, utcnow

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PBKDF2_ITERATIONS = 120_000
JWT_ALGORITHM = "HS256"
FEDERATED_CREATE_ATTEMPTS = 5


# --- Passwords ---

def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Salted PBKDF2-SHA256, stored as pbkdf2_sha256$iterations$salt$hash."""
    if not salt:
        salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${dk.hex()}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    try:
        _, iterations, salt, expected = stored.split("$")
        dk = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), int(iterations))
    except ValueError:
        logger.warning("Unreadable password hash encountered")
        return False
    return hmac.compare_digest(dk.hex(), expected)


def check_password_length(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Please enter a password with {PASSWORD_MIN_LENGTH} or more characters"
        )


def normalize_email(email: str) -> str:
    return email.strip().lower()


# --- Tokens ---

def create_token(user_id: str, secret: str, expires_days: int = 30) -> str:
    now = datetime.now(timezone.utc)
    payload = {"id": user_id, "iat": now, "exp": now + timedelta(days=expires_days)}
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> str:
    """Return the user id inside a token. Raises AuthError when it can't be trusted."""
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("Token validation failed: %s", e)
        raise AuthError("Not authorized, token failed")
    user_id = payload.get("id")
    if not isinstance(user_id, str):
        raise AuthError("Not authorized, token failed")
    return user_id


# --- Accounts ---

def register_user(db: Session, username: str, email: str, password: str) -> User:
    username = username.strip()
    email = normalize_email(email)
    if not username:
        raise ValidationError("Username is required")
    check_password_length(password)

    existing = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if existing:
        raise ValidationError("User already exists")

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise ValidationError("User already exists")
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def record_login(db: Session, user_id: str) -> None:
    """Bump login_count and stamp last_login in one UPDATE."""
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(login_count=User.login_count + 1, last_login=utcnow())
    )
    db.commit()


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    # Same message for unknown email and wrong password
    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")

    record_login(db, user.id)
    db.refresh(user)
    return user


@dataclass
class FederatedProfile:
    """What we need from an identity provider's userinfo."""

    provider_id: str
    display_name: str
    email: Optional[str] = None
    picture: Optional[str] = None


def generate_username(db: Session, display_name: str) -> str:
    base = "".join(display_name.split()) or "user"
    while True:
        candidate = f"{base}{random.randint(0, 999)}"
        if not db.query(User.id).filter(User.username == candidate).first():
            return candidate


def _placeholder_email(username: str) -> str:
    return f"{username.lower()}@users.noreply.projectshelf"


def _link_by_email(db: Session, profile: FederatedProfile) -> Optional[User]:
    if not profile.email:
        return None
    user = db.query(User).filter(User.email == normalize_email(profile.email)).first()
    if user:
        user.google_id = profile.provider_id
        if not user.profile_picture and profile.picture:
            user.profile_picture = profile.picture
        db.commit()
        logger.info("Linked Google account to user %s", user.id)
    return user


def _create_federated_user(db: Session, profile: FederatedProfile) -> User:
    """
    New account for a provider profile. Usernames are retried until both the
    username and the placeholder email (if one is needed) are free.
    """
    for _ in range(FEDERATED_CREATE_ATTEMPTS):
        username = generate_username(db, profile.display_name)
        if profile.email:
            email = normalize_email(profile.email)
        else:
            email = _placeholder_email(username)
            if db.query(User.id).filter(User.email == email).first():
                continue

        user = User(
            google_id=profile.provider_id,
            username=username,
            email=email,
            profile_picture=profile.picture or "",
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # A parallel sign-in may have created or claimed the account meanwhile
            existing = db.query(User).filter(User.google_id == profile.provider_id).first()
            existing = existing or _link_by_email(db, profile)
            if existing:
                return existing
            continue
        logger.info("Created user %s from Google sign-in", user.id)
        return user

    raise ValidationError("Could not create an account for this Google profile")


def federated_login(db: Session, profile: FederatedProfile) -> User:
    """
    Resolve a Google profile to a local account:
    google id match -> email match (links the account) -> brand new account.
    """
    user = db.query(User).filter(User.google_id == profile.provider_id).first()
    if not user:
        user = _link_by_email(db, profile)
    if not user:
        user = _create_federated_user(db, profile)

    record_login(db, user.id)
    db.refresh(user)
    return user
