"""
Profile Service
===============

Profile reads and edits, and the client-side employee search.

Role is fixed at signup: ``update_profile`` refuses to change it. Callers
announce a successful edit through the gateway (``USER_UPDATED``) once the
transaction has committed.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from manpower.models.user import User, UserRole
from manpower.services.jobService import PaginatedResult

logger = logging.getLogger(__name__)


class ProfileError(Exception):
    """Base exception for profile service errors."""


class UserNotFoundError(ProfileError):
    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"User with id '{user_id}' not found.")


class ProfilePermissionError(ProfileError):
    pass


PROFILE_FIELDS = frozenset({
    "full_name",
    "phone",
    "location",
    "bio",
    "skills",
    "hourly_rate",
    "company_name",
    "website",
    "resume_url",
    "avatar_url",
})


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    changes: dict[str, Any],
    *,
    actor: Optional[User] = None,
) -> User:
    """Apply profile edits made by the user themself.

    Raises:
        ProfilePermissionError: If ``actor`` is someone else, or the edit
            tries to change the role or the email.
    """
    if actor is not None and actor.id != user.id:
        raise ProfilePermissionError("You can only edit your own profile.")
    if "role" in changes and changes["role"] is not None:
        current = user.role.value if isinstance(user.role, UserRole) else user.role
        if str(changes["role"]) != current:
            raise ProfilePermissionError("Role cannot be changed after signup.")
    if "email" in changes and changes["email"] not in (None, user.email):
        raise ProfilePermissionError("Email cannot be changed here.")

    applied = sorted(key for key in changes if key in PROFILE_FIELDS)
    for key in applied:
        value = changes[key]
        if key == "skills":
            value = [skill.strip() for skill in (value or []) if skill and skill.strip()]
        setattr(user, key, value)

    await db.flush()
    logger.info("Profile updated: user=%s fields=%s", user.id, applied)
    return user


def _has_skills(user: User, wanted: list[str]) -> bool:
    have = {skill.lower() for skill in (user.skills or [])}
    return all(skill.lower() in have for skill in wanted)


async def search_employees(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    location: Optional[str] = None,
    skills: Optional[list[str]] = None,
    min_rate: Optional[Decimal] = None,
    max_rate: Optional[Decimal] = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Employees matching every given filter, newest accounts first.

    ``search`` matches name or bio; ``skills`` requires all listed skills
    (case-insensitive). The skills filter runs in Python because the skill
    list is a JSON column.
    """
    filters = [User.role == UserRole.EMPLOYEE]
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(or_(func.lower(User.full_name).like(pattern), func.lower(User.bio).like(pattern)))
    if location:
        filters.append(func.lower(User.location).like(f"%{location.strip().lower()}%"))
    if min_rate is not None:
        filters.append(User.hourly_rate >= min_rate)
    if max_rate is not None:
        filters.append(User.hourly_rate <= max_rate)

    stmt = select(User).where(*filters).order_by(User.created_at.desc())
    employees = list((await db.execute(stmt)).scalars().all())

    wanted = [skill.strip() for skill in (skills or []) if skill.strip()]
    if wanted:
        employees = [user for user in employees if _has_skills(user, wanted)]

    start = (page - 1) * page_size
    return PaginatedResult(
        items=employees[start:start + page_size],
        total_items=len(employees),
        page=page,
        page_size=page_size,
    )
