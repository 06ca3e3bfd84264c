"""Admin capability checks backed by the ``user_roles`` table."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from threading import Lock
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.config import settings
from app.core.database import get_engine
from app.models.user_role import UserRoleRecord

logger = logging.getLogger(__name__)


class RoleRepository(Protocol):
    def roles_for(self, email: str) -> set[str]:
        ...


class InMemoryRoleRepository(RoleRepository):
    """Role assignments held in process, keyed by lower-cased email."""

    def __init__(self, assignments: Mapping[str, Iterable[str]] | None = None) -> None:
        self._roles: dict[str, set[str]] = {}
        self._lock = Lock()
        for email, roles in (assignments or {}).items():
            for role in roles:
                self.assign(email, role)

    def assign(self, email: str, role: str) -> None:
        with self._lock:
            self._roles.setdefault(email.strip().lower(), set()).add(role)

    def roles_for(self, email: str) -> set[str]:
        with self._lock:
            return set(self._roles.get(email.strip().lower(), set()))


class SupabaseRoleRepository(RoleRepository):
    """Reads role assignments from Postgres/Supabase via SQLModel."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def roles_for(self, email: str) -> set[str]:
        normalized = email.strip().lower()
        with Session(self._engine) as session:
            statement = select(UserRoleRecord.role).where(UserRoleRecord.email == normalized)
            return set(session.exec(statement).all())


class AdminAccessPolicy:
    """Grants admin access to allow-listed emails or holders of an admin role."""

    def __init__(
        self,
        *,
        admin_emails: Iterable[str] = (),
        admin_roles: Iterable[str] = (),
        repository: RoleRepository | None = None,
    ) -> None:
        self._admin_emails = {email.strip().lower() for email in admin_emails if email.strip()}
        self._admin_roles = set(admin_roles)
        self._repository = repository or InMemoryRoleRepository()

    def can_access_admin(self, email: str | None) -> bool:
        if not email or not email.strip():
            return False
        normalized = email.strip().lower()
        if normalized in self._admin_emails:
            return True
        try:
            roles = self._repository.roles_for(normalized)
        except SQLAlchemyError:
            logger.exception("access.roles.lookup_failed", extra={"email_domain": mask_email(normalized)})
            return False
        granted = bool(roles & self._admin_roles)
        logger.info(
            "access.admin.checked",
            extra={"email_domain": mask_email(normalized), "granted": granted},
        )
        return granted


def mask_email(email: str) -> str:
    domain = email.split("@")[-1] if "@" in email else ""
    return f"*@{domain}" if domain else "*"


def build_access_policy() -> AdminAccessPolicy:
    engine = get_engine()
    repository: RoleRepository = (
        SupabaseRoleRepository(engine) if engine is not None else InMemoryRoleRepository()
    )
    return AdminAccessPolicy(
        admin_emails=settings.admin_email_set,
        admin_roles=settings.admin_role_set,
        repository=repository,
    )
