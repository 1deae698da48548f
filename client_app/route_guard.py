"""
Navigation guard. Runs before every client-side navigation and decides from the stored
token set whether to allow it or redirect:

  no valid token + protected route   -> sign-in
  valid token    + auth-only route   -> home
  anything else                      -> allow

The guard never refreshes; staleness is the refresh scheduler's job.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from client_app.session import AuthSession

logger = logging.getLogger(__name__)

HOME_PATH = "/"
SIGN_IN_PATH = "/signin"
NOT_FOUND_PATH = "/404"


@dataclass(frozen=True)
class Route:
    name: str
    path: str
    requires_auth: bool = False
    # Sign-in/sign-up/callback pages: pointless once signed in
    auth_only: bool = False


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: str | None = None


ALLOW = GuardDecision(True)

DEFAULT_ROUTES = (
    Route("Home", HOME_PATH, requires_auth=True),
    Route("List", "/list", requires_auth=True),
    Route("Detail", "/detail", requires_auth=True),
    Route("SignIn", SIGN_IN_PATH, auth_only=True),
    Route("SignUp", "/signup", auth_only=True),
    Route("AuthCallback", "/auth/validation", auth_only=True),
    Route("NotFound", NOT_FOUND_PATH),
)


def guard(route: Route, has_valid_token: bool) -> GuardDecision:
    if not has_valid_token:
        if route.requires_auth:
            return GuardDecision(False, SIGN_IN_PATH)
        return ALLOW
    if route.auth_only:
        return GuardDecision(False, HOME_PATH)
    return ALLOW


class RouteGuard:
    def __init__(
        self,
        session: AuthSession,
        routes: tuple[Route, ...] = DEFAULT_ROUTES,
        clock: Callable[[], float] = time.time,
    ):
        self._session = session
        self._routes = {r.path: r for r in routes}
        self._clock = clock

    def resolve(self, path: str) -> Route | None:
        path = path.split("?", 1)[0].split("#", 1)[0]
        if path != "/":
            path = path.rstrip("/")
        return self._routes.get(path)

    def before_navigate(self, path: str) -> GuardDecision:
        route = self.resolve(path)
        if route is None:
            # Catch-all: unknown paths go to the not-found page
            return GuardDecision(False, NOT_FOUND_PATH)
        has_token = self._session.is_authenticated(self._clock())
        decision = guard(route, has_token)
        logger.debug("Navigation to %s (valid token: %s) -> %s", route.name, has_token, decision)
        return decision
