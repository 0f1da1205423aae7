"""Platform connections: store, list and revoke ad-platform credentials.

WHAT:
    - connect: upsert the (user, platform) connection with encrypted tokens
    - list / summaries: projections of the stored rows (tokens never leave)
    - disconnect: mark `revoked`, idempotent
    - active_connection / tokens: what the platform clients need at call time

WHY:
    The PlatformConnection table is the single source of truth. The profile's
    `platformConnections` list is derived from it on read, never stored.

REFERENCES:
    security.py (encrypt_secret / decrypt_secret)
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import ConnectionStatusEnum, PlatformConnection, PlatformEnum, User
from ..schemas import ConnectRequest
from ..security import decrypt_secret, encrypt_secret
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

# Platforms with a connect endpoint and the credential fields each requires
REQUIRED_FIELDS: Dict[PlatformEnum, Tuple[str, ...]] = {
    PlatformEnum.facebook: ("access_token", "account_id"),
    PlatformEnum.google: ("access_token", "refresh_token", "account_id"),
    PlatformEnum.linkedin: ("access_token", "account_id"),
}
MISSING_FIELDS_MESSAGES = {
    PlatformEnum.facebook: "Please provide access token and account ID",
    PlatformEnum.google: "Please provide access token, refresh token, and account ID",
    PlatformEnum.linkedin: "Please provide access token and account ID",
}
TOKEN_LIFETIMES = {
    PlatformEnum.facebook: timedelta(days=60),
    PlatformEnum.google: timedelta(hours=1),
    PlatformEnum.linkedin: timedelta(days=60),
}


def parse_platform(value: str) -> PlatformEnum:
    try:
        return PlatformEnum(value)
    except ValueError:
        raise ValidationError("Invalid platform")


def connectable_platform(value: str) -> PlatformEnum:
    platform = parse_platform(value)
    if platform not in REQUIRED_FIELDS:
        raise ValidationError(f"Connecting {platform.value} is not supported")
    return platform


def _label(connection: PlatformConnection) -> str:
    return f"{connection.platform.value}:{connection.account_id}"


def connect(
    db: Session,
    cipher: Fernet,
    principal: User,
    platform: PlatformEnum,
    payload: ConnectRequest,
) -> PlatformConnection:
    """Create or refresh the caller's connection to `platform`.

    Reconnecting updates the existing row in place; the latest tokens win.
    A refresh token that is omitted on reconnect keeps the stored one.
    """
    if any(not getattr(payload, name) for name in REQUIRED_FIELDS[platform]):
        raise ValidationError(MISSING_FIELDS_MESSAGES[platform])

    connection = (
        db.query(PlatformConnection)
        .filter(PlatformConnection.user_id == principal.id, PlatformConnection.platform == platform)
        .first()
    )
    created = connection is None
    if created:
        connection = PlatformConnection(user_id=principal.id, platform=platform)
        db.add(connection)

    connection.account_id = payload.account_id
    if payload.account_name is not None:
        connection.account_name = payload.account_name
    if payload.metadata:
        connection.connection_metadata = {**(connection.connection_metadata or {}), **payload.metadata}

    label = _label(connection)
    connection.access_token_enc = encrypt_secret(cipher, payload.access_token, context=f"{label}:access")
    if payload.refresh_token:
        connection.refresh_token_enc = encrypt_secret(cipher, payload.refresh_token, context=f"{label}:refresh")

    now = utcnow()
    connection.status = ConnectionStatusEnum.active
    connection.expires_at = now + TOKEN_LIFETIMES[platform]
    connection.connected_at = now

    db.commit()
    db.refresh(connection)
    logger.info("[PLATFORMS] %s %s connection for user %s", "Created" if created else "Updated", platform.value, principal.id)
    return connection


def list_connections(db: Session, user: User) -> List[PlatformConnection]:
    return (
        db.query(PlatformConnection)
        .filter(PlatformConnection.user_id == user.id)
        .order_by(PlatformConnection.created_at)
        .all()
    )


def connection_summaries(db: Session, user: User) -> List[dict]:
    """The profile's `platformConnections` view, derived from stored connections."""
    return [
        {
            "platform": connection.platform,
            "connected": connection.connected,
            "account_id": connection.account_id,
            "connected_at": connection.connected_at,
        }
        for connection in list_connections(db, user)
    ]


def disconnect(db: Session, principal: User, platform: PlatformEnum) -> None:
    """Revoke the connection if there is one; a no-op otherwise."""
    connection = (
        db.query(PlatformConnection)
        .filter(PlatformConnection.user_id == principal.id, PlatformConnection.platform == platform)
        .first()
    )
    if connection is None:
        logger.info("[PLATFORMS] Disconnect %s for user %s: nothing connected", platform.value, principal.id)
        return
    connection.status = ConnectionStatusEnum.revoked
    db.commit()
    logger.info("[PLATFORMS] Revoked %s connection for user %s", platform.value, principal.id)


def active_connection(db: Session, principal: User, platform: PlatformEnum) -> PlatformConnection:
    """The caller's usable connection to `platform`.

    A connection past its expiry with no refresh token is marked `expired`.

    Raises:
        ValidationError: not connected, revoked or expired.
    """
    connection = (
        db.query(PlatformConnection)
        .filter(PlatformConnection.user_id == principal.id, PlatformConnection.platform == platform)
        .first()
    )
    if connection is None or connection.status == ConnectionStatusEnum.revoked:
        raise ValidationError(f"No active {platform.value} connection. Connect the account first")

    if (
        connection.status == ConnectionStatusEnum.active
        and connection.expires_at is not None
        and connection.expires_at <= utcnow()
        and not connection.refresh_token_enc
    ):
        connection.status = ConnectionStatusEnum.expired
        db.commit()
        logger.info("[PLATFORMS] %s connection for user %s expired", platform.value, principal.id)

    if connection.status == ConnectionStatusEnum.expired:
        raise ValidationError(f"The {platform.value} connection has expired. Reconnect the account")
    return connection


def access_token(cipher: Fernet, connection: PlatformConnection) -> str:
    return decrypt_secret(cipher, connection.access_token_enc, context=f"{_label(connection)}:access")


def refresh_token(cipher: Fernet, connection: PlatformConnection) -> Optional[str]:
    if not connection.refresh_token_enc:
        return None
    return decrypt_secret(cipher, connection.refresh_token_enc, context=f"{_label(connection)}:refresh")


def store_refreshed_access_token(db: Session, cipher: Fernet, connection: PlatformConnection, token: str) -> None:
    """Persist an access token obtained through a refresh (Google)."""
    connection.access_token_enc = encrypt_secret(cipher, token, context=f"{_label(connection)}:access")
    connection.expires_at = utcnow() + TOKEN_LIFETIMES.get(connection.platform, timedelta(hours=1))
    connection.status = ConnectionStatusEnum.active
    db.commit()
