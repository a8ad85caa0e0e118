"""
Route Guard
===========

Decides, for a navigation target, whether to render it, redirect
elsewhere, or hold rendering until the session has resolved.

Decision order for ``decide``::

    loading                                  -> pending
    not authenticated and route not public   -> redirect /auth/login
    role required and role differs           -> redirect to role home
    public-only route with a known role      -> redirect to role home
    otherwise                                -> render

``decide`` is a pure function of its inputs. ``evaluate`` feeds it from a
session state holder and the route table, and ``NavigationGuard`` keeps
the decision for the current path up to date as the session changes.
"""

from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from manpower.models.user import UserRole

if TYPE_CHECKING:
    from manpower.services.sessionState import SessionState

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/auth/login"
SIGNUP_ROUTE = "/auth/signup"
PUBLIC_LANDING = "/"

HOME_ROUTES: dict[UserRole, str] = {
    UserRole.CLIENT: "/client/dashboard",
    UserRole.EMPLOYEE: "/employee/dashboard",
}


class GuardAction(str, enum.Enum):
    RENDER = "render"
    REDIRECT = "redirect"
    PENDING = "pending"


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    location: Optional[str] = None

    @classmethod
    def render(cls) -> GuardDecision:
        return cls(GuardAction.RENDER)

    @classmethod
    def redirect(cls, location: str) -> GuardDecision:
        return cls(GuardAction.REDIRECT, location)

    @classmethod
    def pending(cls) -> GuardDecision:
        return cls(GuardAction.PENDING)


def _coerce_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if role is None or isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def home_route_for(role: Union[UserRole, str, None]) -> str:
    """Landing route for a role; unknown or missing roles land on ``/``."""
    known = _coerce_role(role)
    if known is None:
        return PUBLIC_LANDING
    return HOME_ROUTES[known]


def decide(
    is_authenticated: bool,
    role: Union[UserRole, str, None],
    required_role: Union[UserRole, str, None],
    is_public: bool,
    *,
    public_only: bool = False,
    loading: bool = False,
) -> GuardDecision:
    """Return the navigation decision for one route."""
    if loading:
        return GuardDecision.pending()

    if not is_authenticated:
        if is_public or public_only:
            return GuardDecision.render()
        return GuardDecision.redirect(LOGIN_ROUTE)

    known_role = _coerce_role(role)
    if required_role is not None and known_role != _coerce_role(required_role):
        return GuardDecision.redirect(home_route_for(known_role))

    # A signed-in user with a usable home does not see login/signup/landing
    if public_only and known_role is not None:
        return GuardDecision.redirect(home_route_for(known_role))

    return GuardDecision.render()


# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteRule:
    prefix: str
    required_role: Optional[UserRole] = None
    public: bool = False
    public_only: bool = False

    def matches(self, path: str) -> bool:
        if self.prefix == "/":
            return path == "/"
        return path == self.prefix or path.startswith(self.prefix + "/")


ROUTES: tuple[RouteRule, ...] = (
    RouteRule("/", public_only=True),
    RouteRule(LOGIN_ROUTE, public_only=True),
    RouteRule(SIGNUP_ROUTE, public_only=True),
    RouteRule("/jobs", public=True),
    RouteRule("/jobs/post", required_role=UserRole.CLIENT),
    RouteRule("/client", required_role=UserRole.CLIENT),
    RouteRule("/employee", required_role=UserRole.EMPLOYEE),
    RouteRule("/find-employees", required_role=UserRole.CLIENT),
    RouteRule("/contracts"),
    RouteRule("/messages"),
    RouteRule("/chat"),
    RouteRule("/profile"),
    RouteRule("/proposals"),
)

# Paths outside the table only require a signed-in user
DEFAULT_RULE = RouteRule("")


def normalize_path(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0].strip() or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def match_route(path: str, routes: tuple[RouteRule, ...] = ROUTES) -> RouteRule:
    """Return the rule with the longest prefix matching ``path``."""
    path = normalize_path(path)
    best: Optional[RouteRule] = None
    for rule in routes:
        if rule.matches(path) and (best is None or len(rule.prefix) > len(best.prefix)):
            best = rule
    return best or DEFAULT_RULE


def evaluate(session: SessionState, path: str) -> GuardDecision:
    rule = match_route(path)
    return decide(
        session.is_authenticated,
        session.role,
        rule.required_role,
        rule.public,
        public_only=rule.public_only,
        loading=session.loading,
    )


DecisionCallback = Callable[[GuardDecision], Union[Awaitable[Any], Any]]


class NavigationGuard:
    """Tracks the current path and re-decides whenever the session changes."""

    def __init__(
        self,
        session: SessionState,
        on_decision: Optional[DecisionCallback] = None,
    ) -> None:
        self._session = session
        self._on_decision = on_decision
        self._path: Optional[str] = None
        self._decision: Optional[GuardDecision] = None
        self._unsubscribe = session.subscribe(self._on_session_change)

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def decision(self) -> Optional[GuardDecision]:
        return self._decision

    def navigate(self, path: str) -> GuardDecision:
        self._path = normalize_path(path)
        self._decision = evaluate(self._session, self._path)
        logger.debug("Navigate %s -> %s", self._path, self._decision)
        return self._decision

    async def _on_session_change(self, _session: SessionState) -> None:
        if self._path is None:
            return
        self._decision = evaluate(self._session, self._path)
        if self._on_decision is not None:
            result = self._on_decision(self._decision)
            if inspect.isawaitable(result):
                await result

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
