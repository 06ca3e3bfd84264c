"""Signed bearer tokens identifying a signed-in portal user."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass


class SessionTokenError(RuntimeError):
    """Raised when a bearer token is missing, malformed, forged or expired."""

    def __init__(self, message: str, code: str = "401_INVALID_SESSION") -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class SessionContext:
    email: str
    expires_at: int


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(
    email: str,
    *,
    secret: str,
    ttl_seconds: int,
    now: float | None = None,
) -> str:
    """Return ``<base64url(email|expires_at)>.<hmac-sha256>`` for ``email``."""
    if not secret:
        raise ValueError("A signing secret is required to issue session tokens.")
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email is required to issue a session token.")
    expires_at = int((now if now is not None else time.time()) + ttl_seconds)
    raw = f"{normalized}|{expires_at}".encode("utf-8")
    payload = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return f"{payload}.{_sign(payload, secret)}"


def verify_session_token(token: str, *, secret: str, now: float | None = None) -> SessionContext:
    """Validate signature and expiry, returning the session it encodes."""
    payload, _, signature = (token or "").strip().partition(".")
    if not payload or not signature:
        raise SessionTokenError("Malformed session token.")
    if not hmac.compare_digest(_sign(payload, secret), signature):
        raise SessionTokenError("Invalid session token.")
    try:
        padded = payload + "=" * (-len(payload) % 4)
        email, _, expires_raw = base64.urlsafe_b64decode(padded).decode("utf-8").rpartition("|")
        expires_at = int(expires_raw)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise SessionTokenError("Malformed session token.") from exc
    if not email:
        raise SessionTokenError("Malformed session token.")
    current = now if now is not None else time.time()
    if expires_at < current:
        raise SessionTokenError("Session expired.", code="401_SESSION_EXPIRED")
    return SessionContext(email=email, expires_at=expires_at)
