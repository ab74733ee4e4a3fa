import httpx
import pytest
from supabase_auth.errors import AuthApiError, AuthRetryableError

from reztek_service.errors import AuthError, AuthErrorKind, map_provider_error


@pytest.mark.parametrize(
    "exc, kind",
    [
        (AuthApiError("Invalid login credentials", 400, "invalid_credentials"), AuthErrorKind.INVALID_CREDENTIAL),
        (AuthApiError("Invalid login credentials", 400, None), AuthErrorKind.INVALID_CREDENTIAL),
        (AuthApiError("User not found", 404, "user_not_found"), AuthErrorKind.USER_NOT_FOUND),
        (AuthApiError("Rate limit", 429, "over_request_rate_limit"), AuthErrorKind.TOO_MANY_REQUESTS),
        (AuthApiError("Slow down", 429, None), AuthErrorKind.TOO_MANY_REQUESTS),
        (AuthApiError("invalid JWT", 401, "bad_jwt"), AuthErrorKind.SESSION_EXPIRED_OR_INVALID),
        (AuthApiError("Upstream down", 503, None), AuthErrorKind.TRANSPORT_FAILURE),
        (AuthRetryableError("Connection refused", 0), AuthErrorKind.TRANSPORT_FAILURE),
        (httpx.ConnectError("boom"), AuthErrorKind.TRANSPORT_FAILURE),
        (AuthApiError("Something odd", 400, None), AuthErrorKind.UNKNOWN),
        (RuntimeError("unexpected"), AuthErrorKind.UNKNOWN),
    ],
)
def test_map_provider_error(exc, kind):
    assert map_provider_error(exc).kind == kind


def test_auth_error_passes_through_unchanged():
    error = AuthError(AuthErrorKind.NOT_AUTHORIZED, "no tenant record")
    assert map_provider_error(error) is error


def test_user_message_hides_operator_message():
    error = AuthError(AuthErrorKind.INVALID_CREDENTIAL, "raw provider text")

    assert error.message == "raw provider text"
    assert "raw provider text" not in error.user_message
    assert error.status_code == 401


@pytest.mark.parametrize(
    "kind, status_code",
    [
        (AuthErrorKind.NOT_AUTHORIZED, 403),
        (AuthErrorKind.TOO_MANY_REQUESTS, 429),
        (AuthErrorKind.TRANSPORT_FAILURE, 502),
        (AuthErrorKind.UNKNOWN, 500),
        (AuthErrorKind.INVALID_ADMIN_SESSION, 401),
    ],
)
def test_status_codes_per_kind(kind, status_code):
    assert AuthError(kind).status_code == status_code
