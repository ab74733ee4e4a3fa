import pytest
from pydantic import ValidationError

from reztek_service.config import DEFAULT_ADMIN_EMAIL, FIVE_DAYS_SECONDS, Settings

REQUIRED = {
    "REZTEK_SUPABASE_URL": "http://localhost:54321",
    "REZTEK_SUPABASE_ANON_KEY": "anon",
    "REZTEK_SUPABASE_SERVICE_ROLE_KEY": "service",
    "REZTEK_SESSION_SECRET_KEY": "secret",
}


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{**REQUIRED, **overrides})


def test_defaults():
    config = make_settings()

    assert config.AUTHORIZED_ADMIN_EMAILS == frozenset({DEFAULT_ADMIN_EMAIL})
    assert config.SESSION_MAX_AGE_SECONDS == FIVE_DAYS_SECONDS
    assert config.SESSION_COOKIE_NAME == "session"
    assert config.STORAGE_BUCKET == "maintenance-requests"


def test_admin_emails_are_a_case_insensitive_set():
    config = make_settings(REZTEK_AUTHORIZED_ADMIN_EMAILS=" A@x.com, b@Y.com ,,")

    assert config.AUTHORIZED_ADMIN_EMAILS == frozenset({"a@x.com", "b@y.com"})
    assert config.is_authorized_admin("B@y.COM")
    assert not config.is_authorized_admin("c@x.com")
    assert not config.is_authorized_admin(None)


def test_admin_prefix_is_normalised():
    assert make_settings(REZTEK_ADMIN_PATH_PREFIX="admin/").ADMIN_PATH_PREFIX == "/admin"


def test_session_max_age_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(REZTEK_SESSION_MAX_AGE_SECONDS=0)
