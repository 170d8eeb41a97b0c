"""
Security helpers for password hashing and bearer authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens carry
the account identifier (``sub``), the role and an expiration
timestamp (``exp``).  Passwords are hashed with PBKDF2‑HMAC‑SHA256 and
a random salt.

``verify_token`` is the identity claims verifier used by every
authenticated route and by the realtime WebSocket endpoint.
"""

import base64
import json
import time
import hmac
import hashlib
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import Forbidden, InvalidCredential, MissingCredential


ROLE_STUDENT = "Student"
ROLE_ADMINISTRATOR = "Administrator"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller extracted from a verified token."""

    account_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMINISTRATOR


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field representing the
    expiration time as a UNIX timestamp.  Clients send the token in
    the ``Authorization`` header as ``Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token.
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta if expires_delta is not None else settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature = _sign(signing_input, settings.secret_key)
    signature_b64 = _b64_url_encode(signature)
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Verifies the HMAC signature and checks the ``exp`` field.  Returns
    the payload dictionary, or ``None`` if the token is malformed,
    forged or expired.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    try:
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, settings.secret_key)
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        if data.get("exp") is None or int(data["exp"]) < int(time.time()):
            return None
    except (TypeError, ValueError):
        return None
    return data


def issue_token(account_id: int, role: str) -> str:
    """Issue a bearer token for an account."""
    return create_access_token({"sub": str(account_id), "role": role})


def verify_token(token: Optional[str]) -> Identity:
    """Validate a bearer token and return the caller's identity.

    Raises ``MissingCredential`` when no token is given and
    ``InvalidCredential`` when it is malformed, forged or expired, or
    when the account behind it no longer exists or was deactivated.
    """
    if not token:
        raise MissingCredential()
    payload = decode_access_token(token)
    if not payload:
        raise InvalidCredential()
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise InvalidCredential()

    from uconnect_api.app.core.db import get_connection
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, role, active FROM accounts WHERE id = ?",
            (account_id,),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise InvalidCredential("Account no longer exists")
    if not row["active"]:
        raise InvalidCredential("Account deactivated")
    # The stored role wins over the claim so demotions apply immediately.
    return Identity(account_id=row["id"], role=row["role"])


security = HTTPBearer(auto_error=False)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Identity:
    """Dependency that retrieves the current authenticated caller."""
    if credentials is None:
        raise MissingCredential()
    return verify_token(credentials.credentials)


def require_roles(*roles: str) -> Callable[[Identity], Identity]:
    """Dependency factory to enforce that the current caller has one of ``roles``.

    Use in endpoints via ``Depends(require_roles(ROLE_ADMINISTRATOR))``.
    """

    def _role_dependency(current_user: Identity = Depends(get_current_user)) -> Identity:
        if current_user.role not in roles:
            raise Forbidden()
        return current_user

    return _role_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each password.  The result
    is ``<salt hex>$<hash hex>``.
    """
    salt = os.urandom(16)
    iterations = 100_000
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, iterations)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    try:
        salt_hex, hash_hex = hashed_password.split('$', 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    iterations = 100_000
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, iterations)
    return hmac.compare_digest(dk, stored_hash)
