# core/route_guard.py

"""
Route guard for the console's protected screens.

A rule names either the roles allowed on a route, a required
(area, capability) pair, or both. Decisions are computed on every call from
the session's current role; nothing is cached between calls.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from core.logging_config import get_logger
from core.permission_helpers import evaluate
from core.session import IdentitySession, Session
from models.enums import Role


logger = get_logger("guard")

LOGIN_PATH = "/login"
LANDING_PATH = "/dashboard"


@dataclass(frozen=True)
class RouteRule:
    path: str
    allowed_roles: Optional[FrozenSet[str]] = None
    capability: Optional[Tuple[str, str]] = None
    title: str = ""


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    path: str
    redirect_to: Optional[str] = None
    reason: Optional[str] = None


def _roles(*roles: Role) -> FrozenSet[str]:
    return frozenset(r.value for r in roles)


ALL_ROLES = _roles(*Role)
STAFF_ROLES = _roles(
    Role.admin,
    Role.regional_supervisor,
    Role.district_health_officer,
    Role.facility_manager,
)
ROLE_MANAGERS = _roles(
    Role.admin,
    Role.regional_supervisor,
    Role.district_health_officer,
)


# -----------------------------------------------------
# Protected screens
# -----------------------------------------------------
PROTECTED_ROUTES: Dict[str, RouteRule] = {
    rule.path: rule
    for rule in (
        RouteRule("/dashboard", ALL_ROLES, title="Dashboard"),
        RouteRule("/users", STAFF_ROLES, title="User Management"),
        RouteRule("/roles-management", ROLE_MANAGERS, title="Roles Management"),
        RouteRule("/facilities", STAFF_ROLES, title="Facility Management"),
        RouteRule("/inventory", ALL_ROLES, title="Inventory Management"),
        RouteRule("/transactions", ALL_ROLES, title="Stock Transactions"),
        RouteRule("/transfers", STAFF_ROLES, title="Transfer Management"),
        RouteRule("/reports", STAFF_ROLES, title="Reports"),
    )
}


def check_route(session: Optional[Session], rule: RouteRule) -> GuardDecision:
    if session is None:
        return GuardDecision(False, rule.path, LOGIN_PATH, "unauthenticated")

    role = session.role
    allowed = True
    if rule.allowed_roles is not None and role not in rule.allowed_roles:
        allowed = False
    if rule.capability is not None and not evaluate(role, *rule.capability):
        allowed = False

    if allowed:
        return GuardDecision(True, rule.path)

    # Denied on the landing page itself: send to sign-in rather than loop
    redirect_to = LOGIN_PATH if rule.path == LANDING_PATH else LANDING_PATH
    logger.info(f"Route {rule.path} denied for role={role!r}; redirecting to {redirect_to}")
    return GuardDecision(False, rule.path, redirect_to, "forbidden")


def check_path(session: Optional[Session], path: str) -> GuardDecision:
    """Unknown paths are not routable: treated like the root, which redirects by session."""
    rule = PROTECTED_ROUTES.get(path)
    if rule is None:
        target = LANDING_PATH if session is not None else LOGIN_PATH
        return GuardDecision(False, path, target, "not_found")
    return check_route(session, rule)


# -----------------------------------------------------
# Navigator: guard bound to a live session
# -----------------------------------------------------
class Navigator:
    """
    Tracks the current location for one console client.

    navigate() evaluates the guard on every attempt. The navigator also
    listens to the session and re-checks the current location whenever the
    session changes, following the redirect if access was lost.
    """

    def __init__(self, session: IdentitySession, start: str = LANDING_PATH):
        self._session = session
        self.location: str = start if session.current is not None else LOGIN_PATH
        self.history: List[GuardDecision] = []
        self._listeners: List[Callable[[GuardDecision], None]] = []
        self._unsubscribe = session.subscribe(self._on_session_change)

    def on_redirect(self, listener: Callable[[GuardDecision], None]):
        self._listeners.append(listener)

    def navigate(self, path: str) -> GuardDecision:
        if path == LOGIN_PATH:
            if self._session.current is not None:
                decision = GuardDecision(False, path, LANDING_PATH, "already_signed_in")
            else:
                decision = GuardDecision(True, path)
        else:
            decision = check_path(self._session.current, path)
        return self._apply(decision)

    def _apply(self, decision: GuardDecision) -> GuardDecision:
        self.history.append(decision)
        if decision.allowed:
            self.location = decision.path
            return decision

        self.location = decision.redirect_to
        for listener in list(self._listeners):
            listener(decision)
        return decision

    def _on_session_change(self, session: Optional[Session]):
        if self.location == LOGIN_PATH:
            if session is not None:
                self.navigate(LANDING_PATH)
            return
        self.navigate(self.location)

    def close(self):
        self._unsubscribe()
