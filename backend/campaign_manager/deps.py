"""Dependency providers and settings management."""

import logging
from functools import lru_cache
from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from jose import JWTError
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError, AuthorizationError
from .models import RoleEnum, User
from .security import decode_token
from .utils.env import load_env_file

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    DATABASE_URL: str = "sqlite:///./campaign_manager.db"
    AUTO_CREATE_TABLES: bool = True

    JWT_SECRET: str = ""
    JWT_EXPIRES_DAYS: int = 30
    TOKEN_ENCRYPTION_KEY: str = ""

    API_PREFIX: str = "/api"
    BACKEND_CORS_ORIGINS: str = "http://localhost:19006,http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    PASSWORD_RESET_URL: str = "http://localhost:19006/reset-password"
    PASSWORD_RESET_EXPIRES_MINUTES: int = 10

    # Ad platform APIs
    FACEBOOK_API_VERSION: str = "v18.0"
    GOOGLE_ADS_API_VERSION: str = "v14"
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_DEVELOPER_TOKEN: Optional[str] = None
    PLATFORM_HTTP_TIMEOUT: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance (after exporting a local .env)."""
    load_env_file()
    return Settings()  # type: ignore[call-arg]


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with (see main.create_app)."""
    return request.app.state.settings


def get_current_user(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    authorization: Optional[str] = Header(default=None),
) -> User:
    """Resolve the request principal from the `Authorization` header.

    The header value is expected to be in the form: "Bearer <jwt>".
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Not authorized to access this route")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("Not authorized to access this route")

    try:
        payload = decode_token(token, secret=settings.JWT_SECRET)
    except JWTError:
        raise AuthenticationError("Not authorized to access this route")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User no longer exists")
    return user


def require_roles(*roles: RoleEnum) -> Callable[..., User]:
    """Build a dependency that only lets principals with one of `roles` through.

    Used for admin-gated routes. Resource ownership is checked inside the
    services, not here.
    """
    allowed = {RoleEnum(role) for role in roles}

    def _guard(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.info("[AUTH] Role %s rejected (allowed: %s)", current_user.role.value, sorted(r.value for r in allowed))
            raise AuthorizationError(f"User role {current_user.role.value} is not authorized to access this route")
        return current_user

    return _guard


def get_cipher(request: Request):
    """Fernet cipher for platform tokens, validated at startup (see main.create_app)."""
    return request.app.state.cipher


def get_platform_clients(request: Request):
    """`PlatformClientFactory` of the running app; tests swap in a mock transport."""
    return request.app.state.platform_clients
