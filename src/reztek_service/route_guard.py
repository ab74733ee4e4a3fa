"""
Admin route guard.

Every request under the admin prefix, except the login page, must carry a
session cookie that verifies as an authorized admin session. Anything else,
errors included, is redirected to the login page.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from reztek_service.config import Settings
from reztek_service.dependencies.app_deps import get_app_settings
from reztek_service.dependencies.session_deps import (
    ADMIN_VERDICT_STATE,
    get_session_negotiator,
    resolve_override,
)
from reztek_service.errors import AuthErrorKind
from reztek_service.security_audit import log_security_event
from reztek_service.session_negotiator import SessionNegotiator, SessionVerdict

logger = logging.getLogger(__name__)


class GuardOutcome(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    location: Optional[str] = None
    reason: Optional[str] = None
    verdict: Optional[SessionVerdict] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GuardOutcome.ALLOW


def _normalise(path: str) -> str:
    return path.rstrip("/") or "/"


def is_guarded_path(path: str, app_settings: Settings) -> bool:
    path = _normalise(path)
    prefix = app_settings.ADMIN_PATH_PREFIX
    if path != prefix and not path.startswith(prefix + "/"):
        return False
    return path != _normalise(app_settings.ADMIN_LOGIN_PATH)


async def evaluate(
    path: str,
    cookie: Optional[str],
    negotiator: SessionNegotiator,
    app_settings: Settings,
) -> GuardDecision:
    """Decide whether a request for path may proceed."""
    login = app_settings.ADMIN_LOGIN_PATH
    if not is_guarded_path(path, app_settings):
        return GuardDecision(GuardOutcome.ALLOW)

    if not cookie:
        return GuardDecision(GuardOutcome.REDIRECT, login, "no_session")

    try:
        verdict = await negotiator.verify(cookie)
    except Exception as e:
        logger.error(f"Session verification error on {path}: {e}", exc_info=True)
        return GuardDecision(GuardOutcome.REDIRECT, login, "verification_error")

    if verdict.valid:
        return GuardDecision(GuardOutcome.ALLOW, verdict=verdict)
    reason = verdict.reason.value if verdict.reason else AuthErrorKind.UNKNOWN.value
    return GuardDecision(GuardOutcome.REDIRECT, login, reason, verdict)


class AdminRouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirects unauthenticated admin navigation to the login page."""

    async def dispatch(self, request: Request, call_next):
        app_settings = resolve_override(request.app, get_app_settings)()
        if not is_guarded_path(request.url.path, app_settings):
            return await call_next(request)

        try:
            negotiator = resolve_override(request.app, get_session_negotiator)()
            decision = await evaluate(
                request.url.path,
                request.cookies.get(app_settings.SESSION_COOKIE_NAME),
                negotiator,
                app_settings,
            )
        except Exception as e:
            logger.error(f"Route guard failed closed on {request.url.path}: {e}", exc_info=True)
            decision = GuardDecision(
                GuardOutcome.REDIRECT, app_settings.ADMIN_LOGIN_PATH, "guard_error"
            )

        if decision.allowed:
            setattr(request.state, ADMIN_VERDICT_STATE, decision.verdict)
            return await call_next(request)

        log_security_event(
            event_type="admin_guard_redirect",
            request=request,
            status="failure",
            detail=decision.reason,
        )
        return RedirectResponse(url=decision.location, status_code=307)
