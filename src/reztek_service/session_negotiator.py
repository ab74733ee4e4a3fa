"""
Session negotiation between the credential provider and the session cookie.

``SessionNegotiator.issue`` turns an email/password sign-in into a tagged
session artifact, ``verify`` answers whether a cookie value authenticates an
authorized admin, and ``destroy`` produces the cookie directive used at logout.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Response
from supabase._async.client import AsyncClient as AsyncSupabaseClient
from supabase_auth.errors import AuthApiError

from reztek_service.config import Settings, settings as default_settings
from reztek_service.crud import principal_crud
from reztek_service.errors import (
    AccountExistsError,
    AuthError,
    AuthErrorKind,
    StoreError,
    map_provider_error,
)
from reztek_service.security import (
    ADMIN_ROLE,
    DirectSession,
    InvalidDirectSession,
    MalformedSession,
    SessionEncoding,
    StandardSession,
    decode_session,
    encode_direct_session,
    encode_standard_session,
)
from reztek_service.supabase_client import create_sign_in_client

logger = logging.getLogger(__name__)

_ACCOUNT_EXISTS_CODES = {"user_already_exists", "email_exists"}


class Portal(str, Enum):
    ADMIN = "admin"
    TENANT = "tenant"


@dataclass
class ProviderSignIn:
    """A successful password sign-in held on its own provider client."""

    user_id: str
    email: str
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    client: Any = field(repr=False, default=None)


@dataclass(frozen=True)
class VerifiedIdentity:
    user_id: str
    email: str


class SupabaseCredentialProvider:
    """Credential provider contract implemented on Supabase Auth."""

    def __init__(
        self,
        verify_client: AsyncSupabaseClient,
        admin_client: Optional[AsyncSupabaseClient] = None,
        client_factory: Callable[[], Awaitable[AsyncSupabaseClient]] = create_sign_in_client,
    ):
        self._verify_client = verify_client
        self._admin_client = admin_client
        self._client_factory = client_factory

    async def sign_in(self, email: str, password: str) -> ProviderSignIn:
        client = None
        try:
            client = await self._client_factory()
            response = await client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.warning(f"Provider sign-in failed for {email}: {e}")
            await self.close(client)
            raise map_provider_error(e) from e

        if not response or not response.user or not response.session:
            await self.close(client)
            raise AuthError(AuthErrorKind.INVALID_CREDENTIAL, "Provider returned no session")

        return ProviderSignIn(
            user_id=str(response.user.id),
            email=(response.user.email or email).lower(),
            access_token=response.session.access_token,
            refresh_token=response.session.refresh_token,
            client=client,
        )

    async def refresh_token(self, sign_in: ProviderSignIn) -> str:
        """Forces a token refresh and returns the fresh identity token."""
        try:
            response = await sign_in.client.auth.refresh_session(sign_in.refresh_token)
        except Exception as e:
            logger.error(f"Token refresh failed for {sign_in.email}: {e}")
            raise map_provider_error(e) from e
        if not response or not response.session:
            raise AuthError(AuthErrorKind.UNKNOWN, "Provider returned no refreshed session")
        return response.session.access_token

    async def sign_out(self, sign_in: ProviderSignIn) -> None:
        try:
            await sign_in.client.auth.sign_out({"scope": "local"})
        except Exception as e:
            logger.error(f"Provider sign-out failed for {sign_in.email}: {e}")
            raise map_provider_error(e) from e

    async def revoke(self, token: str) -> None:
        """Revokes a standard session token; needs the service-role client."""
        if self._admin_client is None:
            return
        try:
            await self._admin_client.auth.admin.sign_out(token, "local")
        except Exception as e:
            raise map_provider_error(e) from e

    async def delete_account(self, user_id: str) -> None:
        """Removes a provider account; needs the service-role client."""
        if self._admin_client is None:
            raise AuthError(AuthErrorKind.UNKNOWN, "No service-role client to delete accounts")
        try:
            await self._admin_client.auth.admin.delete_user(user_id)
        except Exception as e:
            raise map_provider_error(e) from e
        logger.info(f"Provider account {user_id} deleted")

    async def close(self, client: Any) -> None:
        """Closes the HTTP pool of a throwaway sign-in or sign-up client."""
        if client is None:
            return
        try:
            await client.auth.close()
        except Exception as e:
            logger.warning(f"Could not close provider client: {e}")

    async def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> VerifiedIdentity:
        """Creates a provider account; the tenant record is the caller's job."""
        client = None
        try:
            client = await self._client_factory()
            response = await client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": metadata or {}},
                }
            )
        except AuthApiError as e:
            message = (e.message or "").lower()
            if getattr(e, "code", None) in _ACCOUNT_EXISTS_CODES or "already registered" in message:
                raise AccountExistsError(email) from e
            logger.warning(f"Provider sign-up failed for {email}: {e.message}")
            raise map_provider_error(e) from e
        except Exception as e:
            logger.warning(f"Provider sign-up failed for {email}: {e}")
            raise map_provider_error(e) from e
        finally:
            await self.close(client)

        if not response or not response.user:
            raise AuthError(AuthErrorKind.UNKNOWN, "Provider returned no user on sign-up")
        return VerifiedIdentity(
            user_id=str(response.user.id), email=(response.user.email or email).lower()
        )

    async def reset_password(self, email: str, redirect_to: str) -> None:
        try:
            await self._verify_client.auth.reset_password_for_email(
                email, {"redirect_to": redirect_to}
            )
        except Exception as e:
            logger.error(f"Password reset request failed for {email}: {e}")
            raise map_provider_error(e) from e

    async def verify_token(self, token: str) -> VerifiedIdentity:
        try:
            response = await self._verify_client.auth.get_user(jwt=token)
        except Exception as e:
            error = map_provider_error(e)
            logger.warning(f"Provider token verification failed: {error.message}")
            if error.kind == AuthErrorKind.TRANSPORT_FAILURE:
                raise error from e
            raise AuthError(AuthErrorKind.SESSION_EXPIRED_OR_INVALID, error.message) from e

        if not response or not response.user:
            raise AuthError(
                AuthErrorKind.SESSION_EXPIRED_OR_INVALID, "Provider returned no user"
            )
        return VerifiedIdentity(
            user_id=str(response.user.id), email=(response.user.email or "").lower()
        )


@dataclass(frozen=True)
class IssuedSession:
    artifact: str = field(repr=False)
    encoding: SessionEncoding
    email: str
    user_id: str


@dataclass(frozen=True)
class SessionVerdict:
    valid: bool
    email: Optional[str] = None
    user_id: Optional[str] = None
    encoding: Optional[SessionEncoding] = None
    reason: Optional[AuthErrorKind] = None

    @classmethod
    def invalid(cls, reason: AuthErrorKind, encoding: Optional[SessionEncoding] = None):
        return cls(valid=False, reason=reason, encoding=encoding)

    def as_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"valid": self.valid}
        if self.valid:
            body["email"] = self.email
        elif self.reason:
            body["error"] = AuthError(self.reason).user_message
        return body


@dataclass(frozen=True)
class CookieDirective:
    name: str
    value: str = field(repr=False)
    max_age: int
    secure: bool
    httponly: bool = True
    samesite: str = "lax"
    path: str = "/"

    def apply(self, response: Response) -> Response:
        response.set_cookie(
            key=self.name,
            value=self.value,
            max_age=self.max_age,
            httponly=self.httponly,
            secure=self.secure,
            samesite=self.samesite,
            path=self.path,
        )
        return response


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionNegotiator:
    def __init__(
        self,
        provider: SupabaseCredentialProvider,
        store: AsyncSupabaseClient,
        app_settings: Settings = default_settings,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.provider = provider
        self.store = store
        self.settings = app_settings
        self.now = now

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.settings.SESSION_MAX_AGE_SECONDS)

    async def _release(self, sign_in: ProviderSignIn) -> None:
        # The authorization failure is what the caller needs to see
        try:
            await self.provider.sign_out(sign_in)
        except AuthError as e:
            logger.error(f"Could not sign out {sign_in.email} after rejection: {e.message}")

    async def _find_principal(self, portal: Portal, user_id: str):
        if portal == Portal.TENANT:
            return await principal_crud.get_tenant(self.store, user_id)
        return await principal_crud.get_admin(self.store, user_id)

    async def issue(
        self, email: str, password: str, portal: Portal = Portal.ADMIN
    ) -> IssuedSession:
        """
        Signs in with the provider and returns the session artifact to store
        in the cookie. Raises AuthError on any failure; no artifact is produced
        in that case.
        """
        sign_in = await self.provider.sign_in(email, password)
        try:
            return await self._complete(sign_in, portal)
        finally:
            await self.provider.close(sign_in.client)

    async def _complete(self, sign_in: ProviderSignIn, portal: Portal) -> IssuedSession:
        if portal == Portal.ADMIN and self.settings.is_authorized_admin(sign_in.email):
            artifact = encode_direct_session(
                sign_in.email,
                user_id=sign_in.user_id,
                issued_at=self.now(),
                app_settings=self.settings,
            )
            logger.info(f"Direct admin session issued for {sign_in.email}")
            return IssuedSession(
                artifact=artifact,
                encoding=SessionEncoding.DIRECT,
                email=sign_in.email,
                user_id=sign_in.user_id,
            )

        try:
            principal = await self._find_principal(portal, sign_in.user_id)
        except StoreError as e:
            await self._release(sign_in)
            raise AuthError(AuthErrorKind.TRANSPORT_FAILURE, str(e)) from e

        if not principal:
            logger.warning(
                f"No {portal.value} record for user {sign_in.user_id}; signing out"
            )
            await self._release(sign_in)
            raise AuthError(
                AuthErrorKind.NOT_AUTHORIZED,
                f"User {sign_in.user_id} has no {portal.value} record",
            )

        token = await self.provider.refresh_token(sign_in)
        logger.info(f"Standard {portal.value} session issued for {sign_in.email}")
        return IssuedSession(
            artifact=encode_standard_session(token),
            encoding=SessionEncoding.STANDARD,
            email=sign_in.email,
            user_id=sign_in.user_id,
        )

    def direct_session_for(self, email: str, user_id: Optional[str] = None) -> str:
        """Direct artifact for an authorized admin email, issued at now()."""
        if not self.settings.is_authorized_admin(email):
            raise AuthError(AuthErrorKind.NOT_AUTHORIZED, f"{email} is not an admin")
        return encode_direct_session(
            email, user_id=user_id, issued_at=self.now(), app_settings=self.settings
        )

    def _check_direct(self, session: DirectSession) -> SessionVerdict:
        age = self.now() - session.issued_at
        if (
            session.role == ADMIN_ROLE
            and self.settings.is_authorized_admin(session.email)
            and age < self.max_age
        ):
            return SessionVerdict(
                valid=True,
                email=session.email.lower(),
                user_id=session.user_id,
                encoding=SessionEncoding.DIRECT,
            )
        logger.info(f"Rejected direct session for {session.email} (age {age})")
        return SessionVerdict.invalid(
            AuthErrorKind.INVALID_ADMIN_SESSION, SessionEncoding.DIRECT
        )

    async def authenticate(self, value: Optional[str]) -> SessionVerdict:
        """
        Resolves a cookie value to the identity it proves, without applying
        the admin check to standard sessions.
        """
        if not value:
            return SessionVerdict.invalid(AuthErrorKind.SESSION_EXPIRED_OR_INVALID)
        try:
            session = decode_session(value, self.settings)
        except InvalidDirectSession as e:
            logger.info(f"Direct session rejected: {e}")
            return SessionVerdict.invalid(
                AuthErrorKind.INVALID_ADMIN_SESSION, SessionEncoding.DIRECT
            )
        except MalformedSession as e:
            logger.info(f"Malformed session value: {e}")
            return SessionVerdict.invalid(AuthErrorKind.SESSION_EXPIRED_OR_INVALID)

        if isinstance(session, DirectSession):
            # Never falls through to the provider
            return self._check_direct(session)

        return await self._check_standard(session)

    async def _check_standard(self, session: StandardSession) -> SessionVerdict:
        try:
            identity = await self.provider.verify_token(session.token)
        except AuthError as e:
            return SessionVerdict.invalid(e.kind, SessionEncoding.STANDARD)
        return SessionVerdict(
            valid=True,
            email=identity.email,
            user_id=identity.user_id,
            encoding=SessionEncoding.STANDARD,
        )

    async def verify(self, value: Optional[str]) -> SessionVerdict:
        """Is this cookie value a live session of an authorized admin?"""
        verdict = await self.authenticate(value)
        if verdict.valid and not self.settings.is_authorized_admin(verdict.email):
            logger.info(f"Session for {verdict.email} is not an admin session")
            return SessionVerdict.invalid(AuthErrorKind.NOT_AUTHORIZED, verdict.encoding)
        return verdict

    def cookie_for(self, artifact: str) -> CookieDirective:
        return CookieDirective(
            name=self.settings.SESSION_COOKIE_NAME,
            value=artifact,
            max_age=self.settings.SESSION_MAX_AGE_SECONDS,
            secure=self.settings.is_production(),
        )

    def destroy(self) -> CookieDirective:
        return CookieDirective(
            name=self.settings.SESSION_COOKIE_NAME,
            value="",
            max_age=0,
            secure=self.settings.is_production(),
        )
