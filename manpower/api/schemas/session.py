"""
Pydantic v2 schemas for the session and navigation endpoints.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel

from manpower.api.schemas.user import UserOut
from manpower.services.routeGuard import GuardAction
from manpower.services.sessionState import SessionStatus


class IdentityOut(BaseModel):
    user_id: uuid.UUID
    email: str
    session_id: uuid.UUID


class SessionOut(BaseModel):
    authenticated: bool
    loading: bool
    status: SessionStatus
    user: Optional[IdentityOut] = None
    profile: Optional[UserOut] = None
    home_route: str


class NavigationDecisionOut(BaseModel):
    path: str
    action: GuardAction
    location: Optional[str] = None
