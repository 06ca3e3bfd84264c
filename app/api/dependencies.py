"""Request dependencies shared by the admin routes."""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException

from app.config import settings
from app.services.access.roles import AdminAccessPolicy, build_access_policy, mask_email
from app.services.access.sessions import SessionContext, SessionTokenError, verify_session_token

logger = logging.getLogger(__name__)

_POLICY_INSTANCE: AdminAccessPolicy | None = None


def get_access_policy() -> AdminAccessPolicy:
    global _POLICY_INSTANCE  # noqa: PLW0603
    if _POLICY_INSTANCE is None:
        _POLICY_INSTANCE = build_access_policy()
    return _POLICY_INSTANCE


def require_session(authorization: str | None = Header(default=None)) -> SessionContext:
    if not authorization or not authorization.lower().startswith("bearer "):
        logger.warning("auth.session.missing_header")
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return verify_session_token(token, secret=settings.secret_key)
    except SessionTokenError as exc:
        logger.warning("auth.session.invalid", extra={"code": exc.code})
        raise HTTPException(status_code=401, detail="Unauthorized") from exc


def require_admin(
    session: SessionContext = Depends(require_session),
    policy: AdminAccessPolicy = Depends(get_access_policy),
) -> SessionContext:
    if not policy.can_access_admin(session.email):
        logger.warning("auth.admin.denied", extra={"email_domain": mask_email(session.email)})
        raise HTTPException(status_code=403, detail="Access denied")
    return session
