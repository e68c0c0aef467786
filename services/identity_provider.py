# services/identity_provider.py

from typing import Callable, Optional

from core.errors import AuthFailure, DataAccessFailure, data_access_failure
from core.logging_config import logger
from core.session import Identity
from core.supabase_client import get_supabase_client


def _identity_from(user, session=None) -> Optional[Identity]:
    if user is None:
        return None
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        uid=str(user.id),
        email=getattr(user, "email", None),
        display_name=metadata.get("display_name") or metadata.get("full_name"),
        access_token=getattr(session, "access_token", None) if session else None,
    )


class SupabaseIdentityProvider:
    """
    Identity provider backed by Supabase Auth (GoTrue).

    One long-lived client per provider so on_change() sees the sign-in and
    sign-out events made through it.
    """

    def __init__(self, client_factory: Callable = get_supabase_client):
        self._client_factory = client_factory
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
            if self._client is None:
                raise DataAccessFailure("Identity provider", "Supabase client not configured")
        return self._client

    # ------------------------------------------------------------
    # Sign-in / sign-up / sign-out
    # ------------------------------------------------------------
    def sign_in(self, email: str, password: str) -> Identity:
        email = email.strip().lower()
        try:
            response = self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except DataAccessFailure:
            raise
        except Exception as e:
            # Don't expose provider details to the user
            logger.warning(f"Login attempt failed for {email}: {type(e).__name__}")
            raise AuthFailure("Invalid email or password") from e

        if not response or not response.session or not response.session.access_token:
            raise AuthFailure("Invalid email or password")

        return _identity_from(response.user, response.session)

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        email = email.strip().lower()
        try:
            response = self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"display_name": display_name}},
            })
        except Exception as e:
            raise data_access_failure(e, "Sign up") from e

        if not response or not response.user:
            raise DataAccessFailure("Sign up", "provider returned no user")

        return _identity_from(response.user, response.session)

    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        """Admin-side account creation; does not change the provider's current session."""
        try:
            response = self.client.auth.admin.create_user({
                "email": email.strip().lower(),
                "password": password,
                "email_confirm": True,
                "user_metadata": {"display_name": display_name},
            })
        except Exception as e:
            raise data_access_failure(e, "Create login account") from e

        return _identity_from(response.user)

    def sign_out(self, access_token: Optional[str] = None):
        try:
            if access_token:
                self.client.auth.admin.sign_out(access_token)
            else:
                self.client.auth.sign_out()
        except Exception as e:
            raise data_access_failure(e, "Sign out") from e

    # ------------------------------------------------------------
    # Token validation / change notifications
    # ------------------------------------------------------------
    def get_identity(self, access_token: str) -> Optional[Identity]:
        """Identity for a bearer token, or None when invalid or expired."""
        try:
            response = self.client.auth.get_user(access_token)
        except DataAccessFailure:
            raise
        except Exception as e:
            logger.info(f"Token rejected by provider: {type(e).__name__}")
            return None

        if not response or not response.user:
            return None

        identity = _identity_from(response.user)
        identity.access_token = access_token
        return identity

    def on_change(self, callback: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        def listener(event, session):
            user = getattr(session, "user", None) if session else None
            callback(_identity_from(user, session))

        subscription = self.client.auth.on_auth_state_change(listener)
        return subscription.unsubscribe


# ============================================================
# Shared instance
# ============================================================
_provider: Optional[SupabaseIdentityProvider] = None


def get_identity_provider() -> SupabaseIdentityProvider:
    global _provider
    if _provider is None:
        _provider = SupabaseIdentityProvider()
    return _provider
