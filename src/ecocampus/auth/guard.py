"""Role-based route guard and the routing table it protects."""

import enum
from collections.abc import Collection
from dataclasses import dataclass

from ecocampus.records.models import User, UserRole

LOGIN_PATH = "/login"
HOME_PATH = "/"


class GuardDecision(enum.StrEnum):
    loading = "loading"
    redirect_login = "redirect_login"
    redirect_home = "redirect_home"
    render = "render"


def evaluate_route(
    loading: bool, user: User | None, required_roles: Collection[UserRole]
) -> GuardDecision:
    """Decide how a protected page responds.

    Priority is fixed: an unresolved session always wins, then a missing
    user, then a role mismatch. Checking roles before loading resolves
    would flash a wrong redirect.
    """
    if loading:
        return GuardDecision.loading
    if user is None:
        return GuardDecision.redirect_login
    if user.role not in required_roles:
        return GuardDecision.redirect_home
    return GuardDecision.render


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})
ADMIN_ROLES = frozenset({UserRole.ADMIN})
STUDENT_ROLES = frozenset({UserRole.STUDENT})

# Protected pages and the roles allowed to see them
ROUTE_ROLES: dict[str, frozenset[UserRole]] = {
    "/dashboard": STAFF_ROLES,
    "/live": STAFF_ROLES,
    "/alerts": STAFF_ROLES,
    "/ai-predictions": ADMIN_ROLES,
    "/internet": STAFF_ROLES,
    "/management": ADMIN_ROLES,
    "/student-dashboard": STUDENT_ROLES,
}


@dataclass(frozen=True)
class NavItem:
    path: str
    label: str

    @property
    def roles(self) -> frozenset[UserRole]:
        return ROUTE_ROLES[self.path]


NAV_ITEMS = [
    NavItem("/dashboard", "Dashboard"),
    NavItem("/student-dashboard", "My Impact"),
    NavItem("/live", "Live IoT Data"),
    NavItem("/alerts", "Alerts"),
    NavItem("/ai-predictions", "AI Insights"),
    NavItem("/internet", "Net Monitor"),
    NavItem("/management", "Management"),
]


def nav_for(user: User | None) -> list[NavItem]:
    """Menu entries visible to ``user``."""
    if user is None:
        return []
    return [item for item in NAV_ITEMS if user.role in item.roles]


def landing_path(user: User) -> str:
    """Where a freshly signed-in user is sent."""
    return "/student-dashboard" if user.role == UserRole.STUDENT else "/dashboard"
