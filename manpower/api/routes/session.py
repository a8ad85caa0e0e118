"""
Session & navigation routes
===========================

Expose the resolved session state and the route guard so a front end
can decide what to render without duplicating the rules.

Routes:
  GET /api/v1/session               -- current session state
  GET /api/v1/navigation/resolve    -- guard decision for a path
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from manpower.api.deps import SessionDep
from manpower.api.schemas.session import IdentityOut, NavigationDecisionOut, SessionOut
from manpower.api.schemas.user import UserOut
from manpower.services import routeGuard

router = APIRouter(tags=["Session"])


@router.get("/session", response_model=SessionOut, summary="Current session state")
async def get_session(session: SessionDep) -> SessionOut:
    user = session.user
    profile = session.profile
    return SessionOut(
        authenticated=session.is_authenticated,
        loading=session.loading,
        status=session.status,
        user=(
            IdentityOut(user_id=user.user_id, email=user.email, session_id=user.session_id)
            if user is not None
            else None
        ),
        profile=UserOut.model_validate(profile) if profile is not None else None,
        home_route=session.home_route,
    )


@router.get(
    "/navigation/resolve",
    response_model=NavigationDecisionOut,
    summary="Resolve a navigation attempt",
    description=(
        "Applies the route guard to ``path`` for the caller's session and "
        "returns whether to render it or where to redirect."
    ),
)
async def resolve_navigation(
    session: SessionDep,
    path: str = Query(..., min_length=1, description="Application path, e.g. /client/jobs"),
) -> NavigationDecisionOut:
    normalized = routeGuard.normalize_path(path)
    decision = routeGuard.evaluate(session, normalized)
    return NavigationDecisionOut(
        path=normalized,
        action=decision.action,
        location=decision.location,
    )
