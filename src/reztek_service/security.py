# src/reztek_service/security.py
"""
Session artifact encoding.

A session cookie holds one of two tagged encodings:

* ``direct.<jws>`` - an HS256 token signed with ``SESSION_SECRET_KEY`` for an
  authorized admin identity, checked entirely in-process.
* ``standard.<id token>`` - the provider's identity token, verified by the
  provider on every use.

The prefix is the discriminant; values without a known prefix are rejected.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from reztek_service.config import Settings, settings

DIRECT_PREFIX = "direct."
STANDARD_PREFIX = "standard."
DIRECT_SESSION_TYPE = "direct"
ADMIN_ROLE = "admin"


class SessionEncoding(str, Enum):
    DIRECT = "direct"
    STANDARD = "standard"


@dataclass(frozen=True)
class DirectSession:
    email: str
    role: str
    issued_at: datetime
    name: str = "Admin"
    user_id: Optional[str] = None

    encoding = SessionEncoding.DIRECT


@dataclass(frozen=True)
class StandardSession:
    token: str = field(repr=False)

    encoding = SessionEncoding.STANDARD


SessionArtifact = Union[DirectSession, StandardSession]


class MalformedSession(ValueError):
    """The cookie value is not a well-formed session artifact."""


class InvalidDirectSession(ValueError):
    """The value is tagged direct but its signature or claims are unusable."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_direct_session(
    email: str,
    user_id: Optional[str] = None,
    name: str = "Admin",
    issued_at: Optional[datetime] = None,
    app_settings: Settings = settings,
) -> str:
    """
    Signs a direct admin session and returns the tagged cookie value.
    """
    issued_at = issued_at or _utcnow()
    to_encode: Dict[str, Any] = {
        "email": email.lower(),
        "role": ADMIN_ROLE,
        "name": name,
        "iat": issued_at.timestamp(),
        "session_type": DIRECT_SESSION_TYPE,
    }
    if user_id:
        to_encode["sub"] = str(user_id)
    encoded_jwt = jwt.encode(
        to_encode,
        app_settings.SESSION_SECRET_KEY,
        algorithm=app_settings.SESSION_ALGORITHM,
    )
    return DIRECT_PREFIX + encoded_jwt


def encode_standard_session(token: str) -> str:
    if not token:
        raise MalformedSession("Identity token is empty")
    return STANDARD_PREFIX + token


def encode_session(artifact: SessionArtifact, app_settings: Settings = settings) -> str:
    if isinstance(artifact, DirectSession):
        return encode_direct_session(
            artifact.email,
            user_id=artifact.user_id,
            name=artifact.name,
            issued_at=artifact.issued_at,
            app_settings=app_settings,
        )
    return encode_standard_session(artifact.token)


def _decode_direct(token: str, app_settings: Settings) -> DirectSession:
    try:
        # Expiry is checked by the caller against its own clock
        payload = jwt.decode(
            token,
            app_settings.SESSION_SECRET_KEY,
            algorithms=[app_settings.SESSION_ALGORITHM],
            options={"verify_signature": True, "verify_exp": False, "verify_aud": False},
        )
    except JWTError as e:
        raise InvalidDirectSession(f"Direct session signature check failed: {e}") from e

    if payload.get("session_type") != DIRECT_SESSION_TYPE:
        raise InvalidDirectSession("Token is not a direct session")
    try:
        issued_at = datetime.fromtimestamp(float(payload["iat"]), tz=timezone.utc)
        email = str(payload["email"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidDirectSession(f"Direct session claims are incomplete: {e}") from e

    return DirectSession(
        email=email,
        role=str(payload.get("role", "")),
        issued_at=issued_at,
        name=str(payload.get("name", "Admin")),
        user_id=payload.get("sub"),
    )


def decode_session(
    value: Optional[str], app_settings: Settings = settings
) -> SessionArtifact:
    """
    Splits a cookie value into its tagged artifact.

    Raises MalformedSession for empty or untagged values and
    InvalidDirectSession for direct values that fail the signature check.
    """
    if not value:
        raise MalformedSession("Session value is empty")
    if value.startswith(DIRECT_PREFIX):
        return _decode_direct(value[len(DIRECT_PREFIX):], app_settings)
    if value.startswith(STANDARD_PREFIX):
        token = value[len(STANDARD_PREFIX):]
        if not token:
            raise MalformedSession("Standard session carries no token")
        return StandardSession(token=token)
    raise MalformedSession("Session value has no recognised encoding prefix")
