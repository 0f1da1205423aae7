"""Security utilities for passwords, JWTs and platform token encryption.

WHAT:
    Centralizes password hashing, bearer-token helpers, and symmetric
    encryption for ad-platform access/refresh tokens.

WHY:
    - JWT helpers are used by the `/auth` endpoints and the auth guard.
    - Token encryption keeps platform credentials out of plaintext storage.

Secrets are passed in explicitly (from `deps.Settings`); nothing here reads
the environment.
"""

import base64
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken
from jose import jwt, JWTError
from passlib.hash import bcrypt

from .utils.env import require_setting

ALGORITHM = "HS256"

logger = logging.getLogger(__name__)


def build_cipher(key: str) -> Fernet:
    """Validate the configured Fernet key and return a cipher.

    Raises:
        RuntimeError: If the key is missing or not a URL-safe base64 32-byte string.
    """
    require_setting("TOKEN_ENCRYPTION_KEY", key)
    try:
        base64.urlsafe_b64decode(key.encode("utf-8"))
        return Fernet(key)
    except (ValueError, TypeError) as exc:
        raise RuntimeError(
            "TOKEN_ENCRYPTION_KEY must be a URL-safe base64-encoded 32-byte string. "
            "Generate with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
        ) from exc


def encrypt_secret(cipher: Fernet, plaintext: str, *, context: str) -> str:
    """Encrypt a platform secret before persisting.

    Args:
        cipher:    Fernet instance built by `build_cipher`.
        plaintext: Raw secret to encrypt (e.g., Facebook access token).
        context:   Friendly label for logs (platform/account).

    Returns:
        URL-safe base64 ciphertext suitable for DB storage.
    """
    if not plaintext:
        raise ValueError("Cannot encrypt empty secret.")

    ciphertext = cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")
    logger.info("[TOKEN_ENCRYPT] Secret encrypted for %s (length=%d)", context, len(plaintext))
    return ciphertext


def decrypt_secret(cipher: Fernet, ciphertext: str, *, context: str) -> str:
    """Reverse `encrypt_secret` when a platform client needs the token.

    Raises:
        ValueError: If the stored value cannot be decrypted.
    """
    if not ciphertext:
        raise ValueError("Cannot decrypt empty secret.")

    try:
        return cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except InvalidToken as exc:
        logger.error("[TOKEN_DECRYPT] Invalid ciphertext for %s", context)
        raise ValueError("Unable to decrypt stored token.") from exc


def get_password_hash(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    return bcrypt.verify(password, password_hash)


def create_access_token(subject: str, *, secret: str, expires_days: int = 30) -> str:
    """Create a signed JWT for the given subject (the user id)."""
    require_setting("JWT_SECRET", secret)
    now = datetime.now(timezone.utc)
    expire = now + timedelta(days=expires_days)
    to_encode: Dict[str, Any] = {"sub": subject, "iat": int(now.timestamp()), "exp": int(expire.timestamp())}
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def decode_token(token: str, *, secret: str) -> Dict[str, Any]:
    """Decode and validate a JWT (signature and expiry), returning its payload.

    Raises jose.JWTError on failure.
    """
    if not secret:
        raise JWTError("JWT secret not configured")
    return jwt.decode(token, secret, algorithms=[ALGORITHM])


def hash_reset_token(token: str) -> str:
    """Digest stored for password-reset tokens; the raw token only goes out by link."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
