import logging
from enum import Enum
from typing import Optional

import httpx
from fastapi import status
from supabase_auth.errors import AuthApiError, AuthRetryableError

logger = logging.getLogger(__name__)


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIAL = "InvalidCredential"
    USER_NOT_FOUND = "UserNotFound"
    TOO_MANY_REQUESTS = "TooManyRequests"
    NOT_AUTHORIZED = "NotAuthorized"
    INVALID_ADMIN_SESSION = "InvalidAdminSession"
    SESSION_EXPIRED_OR_INVALID = "SessionExpiredOrInvalid"
    TRANSPORT_FAILURE = "TransportFailure"
    UNKNOWN = "Unknown"


# Inline messages shown by the portals; raw provider errors stay in the logs.
USER_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIAL: "Invalid email or password. Please check your credentials and try again.",
    AuthErrorKind.USER_NOT_FOUND: "No account found with this email address.",
    AuthErrorKind.TOO_MANY_REQUESTS: "Too many failed login attempts. Please try again later.",
    AuthErrorKind.NOT_AUTHORIZED: "This account is not registered for this portal. Please use the correct login portal.",
    AuthErrorKind.INVALID_ADMIN_SESSION: "Invalid admin session",
    AuthErrorKind.SESSION_EXPIRED_OR_INVALID: "Session expired or invalid",
    AuthErrorKind.TRANSPORT_FAILURE: "The authentication service is unavailable. Please try again later.",
    AuthErrorKind.UNKNOWN: "Failed to login. Please check your credentials.",
}

HTTP_STATUS = {
    AuthErrorKind.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TOO_MANY_REQUESTS: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthErrorKind.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.INVALID_ADMIN_SESSION: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.SESSION_EXPIRED_OR_INVALID: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TRANSPORT_FAILURE: status.HTTP_502_BAD_GATEWAY,
    AuthErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Supabase Auth error codes (GoTrue) to our taxonomy
_PROVIDER_CODES = {
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIAL,
    "invalid_grant": AuthErrorKind.INVALID_CREDENTIAL,
    "user_not_found": AuthErrorKind.USER_NOT_FOUND,
    "over_request_rate_limit": AuthErrorKind.TOO_MANY_REQUESTS,
    "over_email_send_rate_limit": AuthErrorKind.TOO_MANY_REQUESTS,
    "bad_jwt": AuthErrorKind.SESSION_EXPIRED_OR_INVALID,
    "session_not_found": AuthErrorKind.SESSION_EXPIRED_OR_INVALID,
    "session_expired": AuthErrorKind.SESSION_EXPIRED_OR_INVALID,
}


class AuthError(Exception):
    """An authentication failure tagged with its kind."""

    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or USER_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class StoreError(Exception):
    """A document store or file storage call failed."""


class AccountExistsError(Exception):
    """The provider already holds an account for this email."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account already exists for {email}")


def map_provider_error(exc: Exception) -> AuthError:
    """Translate an exception raised by the credential provider into an AuthError."""
    if isinstance(exc, AuthError):
        return exc
    if isinstance(exc, (AuthRetryableError, httpx.HTTPError)):
        return AuthError(AuthErrorKind.TRANSPORT_FAILURE, str(exc))
    if isinstance(exc, AuthApiError):
        code = getattr(exc, "code", None)
        if code in _PROVIDER_CODES:
            return AuthError(_PROVIDER_CODES[code], exc.message)
        if exc.status == status.HTTP_429_TOO_MANY_REQUESTS:
            return AuthError(AuthErrorKind.TOO_MANY_REQUESTS, exc.message)
        if exc.status and exc.status >= 500:
            return AuthError(AuthErrorKind.TRANSPORT_FAILURE, exc.message)
        if "invalid login credentials" in (exc.message or "").lower():
            return AuthError(AuthErrorKind.INVALID_CREDENTIAL, exc.message)
        return AuthError(AuthErrorKind.UNKNOWN, exc.message)
    logger.debug(f"Unmapped provider exception {exc.__class__.__name__}: {exc}")
    return AuthError(AuthErrorKind.UNKNOWN, str(exc))
