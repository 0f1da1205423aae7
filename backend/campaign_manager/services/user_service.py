"""Accounts: registration, login, password changes/resets and profile edits.

WHAT:
    Local email + password identities. Passwords are bcrypt-hashed in the
    `auth_credentials` table; bearer tokens are HS256 JWTs whose subject is
    the user id.

WHY:
    Keeps credential handling out of the routers. Secrets come from
    `Settings`, passed in by the caller.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..deps import Settings
from ..errors import AuthenticationError, ConflictError, ValidationError
from ..models import AuthCredential, RoleEnum, User
from ..schemas import ProfileUpdate, RegisterRequest
from ..security import create_access_token, get_password_hash, hash_reset_token, verify_password
from ..utils.dates import utcnow
from .query_filters import ALL_OPERATORS, FieldSpec, ListQuery, Page, ResourceFields, SortKey, as_datetime, as_enum, paginate

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_token(settings: Settings, user: User) -> str:
    return create_access_token(str(user.id), secret=settings.JWT_SECRET, expires_days=settings.JWT_EXPIRES_DAYS)


def auth_payload(settings: Settings, user: User) -> dict:
    """Body shared by register, login, password change and reset."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "company": user.company,
        "role": user.role,
        "token": issue_token(settings, user),
    }


def register(db: Session, payload: RegisterRequest) -> User:
    """Create a `user`-role account.

    Raises:
        ConflictError: the email is already registered.
    """
    email = _normalize_email(payload.email)
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("User already exists")

    user = User(name=payload.name, email=email, company=payload.company, role=RoleEnum.user)
    user.credential = AuthCredential(password_hash=get_password_hash(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("[AUTH] Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials; the same error for unknown email or bad password."""
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if not user or not user.credential or not verify_password(password, user.credential.password_hash):
        logger.info("[AUTH] Failed login for %s", _normalize_email(email))
        raise AuthenticationError("Invalid credentials")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    if not user.credential or not verify_password(current_password, user.credential.password_hash):
        raise AuthenticationError("Password is incorrect")
    user.credential.password_hash = get_password_hash(new_password)
    db.commit()
    db.refresh(user)
    logger.info("[AUTH] Password changed for user %s", user.id)
    return user


def start_password_reset(db: Session, settings: Settings, email: str) -> Optional[str]:
    """Issue a reset token for `email` if it belongs to an account.

    Only the SHA-256 digest is stored. The reset link is logged; delivering
    it by email is out of scope. Returns the raw token (None for unknown
    emails) so callers and tests can complete the flow.
    """
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if not user:
        logger.info("[AUTH] Password reset requested for unknown email")
        return None

    token = secrets.token_hex(20)
    user.reset_password_token = hash_reset_token(token)
    user.reset_password_expires_at = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRES_MINUTES)
    db.commit()
    logger.info("[AUTH] Password reset link for user %s: %s/%s", user.id, settings.PASSWORD_RESET_URL, token)
    return token


def reset_password(db: Session, token: str, new_password: str) -> User:
    """Set a new password from a reset token; the token is single use."""
    user = (
        db.query(User)
        .filter(
            User.reset_password_token == hash_reset_token(token),
            User.reset_password_expires_at > utcnow(),
        )
        .first()
    )
    if not user:
        raise ValidationError("Invalid token")

    if user.credential is None:
        user.credential = AuthCredential(password_hash=get_password_hash(new_password))
    else:
        user.credential.password_hash = get_password_hash(new_password)
    user.reset_password_token = None
    user.reset_password_expires_at = None
    db.commit()
    db.refresh(user)
    logger.info("[AUTH] Password reset completed for user %s", user.id)
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        email = _normalize_email(changes["email"])
        taken = db.query(User).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise ConflictError("Email is already in use")
        user.email = email
    if "name" in changes:
        user.name = changes["name"]
    if "company" in changes:
        user.company = changes["company"]
    db.commit()
    db.refresh(user)
    return user


USER_FIELDS = ResourceFields(
    filters={
        "name": FieldSpec(User.name),
        "email": FieldSpec(User.email),
        "company": FieldSpec(User.company),
        "role": FieldSpec(User.role, as_enum(RoleEnum)),
        "createdAt": FieldSpec(User.created_at, as_datetime, ALL_OPERATORS),
    },
    selectable=frozenset({"name", "email", "company", "role", "createdAt"}),
    default_limit=25,
    default_sort=(SortKey("createdAt", descending=True),),
)


def list_users(db: Session, list_query: ListQuery) -> Page:
    """Every account, for admins."""
    return paginate(db.query(User), list_query, USER_FIELDS)
