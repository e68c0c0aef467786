# core/session.py

"""
Identity session: joins the identity provider's user (uid, email) with the
console's user record (role, profile) from the document store.

Collaborators are duck-typed:

  provider.sign_in(email, password)            -> Identity   (AuthFailure on bad credentials)
  provider.sign_up(email, password, name)      -> Identity
  provider.sign_out(access_token)
  provider.get_identity(access_token)          -> Identity | None
  provider.on_change(callback)                 -> unsubscribe()

  store.read(collection, id)                   -> dict | None
  store.find_by(collection, field, value)      -> list[dict]

services/ holds the Supabase implementations.
"""

from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from core.config import settings
from core.errors import AuthFailure, ConsoleError, DataAccessFailure
from core.logging_config import get_logger
from models.enums import Role, UserStatus
from models.user import UserRecord


logger = get_logger("session")

SessionObserver = Callable[[Optional["Session"]], None]


# ============================================================
# Models
# ============================================================
class Identity(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    access_token: Optional[str] = None


class Session(BaseModel):
    identity: Identity
    user: UserRecord

    @property
    def uid(self) -> str:
        return self.identity.uid

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def access_token(self) -> Optional[str]:
        return self.identity.access_token


# ============================================================
# Seed identities (demo accounts shipped with the console)
# ============================================================
SEED_IDENTITIES: Dict[str, dict] = {
    "admin@dims.go.ug": {
        "id": "seed-admin",
        "name": "DIMS Administrator",
        "phone": "+256700000001",
        "role": Role.admin.value,
    },
    "regional@dims.go.ug": {
        "id": "seed-regional",
        "name": "Regional Supervisor",
        "phone": "+256700000002",
        "role": Role.regional_supervisor.value,
        "region": "Central Region",
    },
    "sarah.nakato@dims.go.ug": {
        "id": "seed-district",
        "name": "Dr. Sarah Nakato",
        "phone": "+256700000003",
        "role": Role.district_health_officer.value,
        "district": "Kampala District",
    },
    "john.mukasa@dims.go.ug": {
        "id": "seed-facility",
        "name": "John Mukasa",
        "phone": "+256700000004",
        "role": Role.facility_manager.value,
        "facility_name": "Mulago National Referral Hospital",
    },
    "mary.nambi@dims.go.ug": {
        "id": "seed-vhw",
        "name": "Mary Nambi",
        "phone": "+256700000005",
        "role": Role.village_health_worker.value,
        "facility_name": "Kawempe Health Center IV",
        "status": UserStatus.inactive.value,
    },
}


LEAST_PRIVILEGED_ROLE = Role.village_health_worker.value


def least_privileged_role() -> str:
    """Default role for identities without a record; only village_health_worker is accepted."""
    configured = settings.DEFAULT_ROLE
    if configured != LEAST_PRIVILEGED_ROLE:
        logger.warning(f"Refusing DEFAULT_ROLE={configured!r}; using {LEAST_PRIVILEGED_ROLE}")
    return LEAST_PRIVILEGED_ROLE


def _record_from_row(row: dict, fallback_id: str, email: Optional[str]) -> UserRecord:
    data = dict(row)
    data.setdefault("id", fallback_id)
    data["id"] = str(data["id"])
    if not data.get("name"):
        data["name"] = (email or fallback_id).split("@")[0]
    # A missing role evaluates to zero permissions, never to a default grant
    data["role"] = data.get("role") or ""
    data.setdefault("email", email)
    return UserRecord(**data)


# ============================================================
# Resolution: uid -> email -> seed -> synthesized default
# ============================================================
def resolve_user(identity: Identity, store, collection: Optional[str] = None) -> UserRecord:
    collection = collection or settings.USERS_TABLE

    row = store.read(collection, identity.uid)
    if row:
        return _record_from_row(row, identity.uid, identity.email)

    if identity.email:
        # Records store e-mails lowercased; older rows may keep the typed case
        email = identity.email.strip()
        matches = store.find_by(collection, "email", email.lower())
        if not matches and email != email.lower():
            matches = store.find_by(collection, "email", email)
        if matches:
            logger.info(f"User record for uid={identity.uid} found by email fallback")
            return _record_from_row(matches[0], identity.uid, identity.email)

        seed = SEED_IDENTITIES.get(identity.email.strip().lower())
        if seed:
            logger.info(f"Seed identity matched for {identity.email}")
            return _record_from_row({**seed, "email": identity.email}, identity.uid, identity.email)

    logger.info(f"No user record for uid={identity.uid}; synthesizing default profile")
    return UserRecord(
        id=identity.uid,
        name=identity.display_name or (identity.email or identity.uid).split("@")[0],
        email=identity.email,
        phone="",
        role=least_privileged_role(),
        status=UserStatus.active,
    )


def resolve_session(identity: Identity, store) -> Session:
    return Session(identity=identity, user=resolve_user(identity, store))


# ============================================================
# Stateful session (one per console client)
# ============================================================
class IdentitySession:
    """
    Current session plus synchronous change notifications.

    Every change (sign-in, sign-out, restoration, role change picked up by
    refresh()) notifies observers in subscription order before the
    triggering call returns.
    """

    def __init__(self, provider, store):
        self._provider = provider
        self._store = store
        self._current: Optional[Session] = None
        self._observers: List[SessionObserver] = []
        self._provider_unsubscribe: Optional[Callable[[], None]] = None

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    # --------------------------------------------------------
    # Observers
    # --------------------------------------------------------
    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        for observer in list(self._observers):
            try:
                observer(self._current)
            except Exception:
                logger.exception("Session observer failed")

    def _set(self, session: Optional[Session]):
        if session == self._current:
            return
        self._current = session
        self._notify()

    # --------------------------------------------------------
    # Provider change callback
    # --------------------------------------------------------
    def attach(self):
        if self._provider_unsubscribe is None:
            self._provider_unsubscribe = self._provider.on_change(self._on_provider_change)

    def detach(self):
        if self._provider_unsubscribe is not None:
            self._provider_unsubscribe()
            self._provider_unsubscribe = None

    def _on_provider_change(self, identity: Optional[Identity]):
        try:
            self.handle_identity_change(identity)
        except ConsoleError as e:
            logger.warning(f"Identity change not applied: {e.message}")

    def handle_identity_change(self, identity: Optional[Identity]) -> Optional[Session]:
        if identity is None:
            self._set(None)
            return None
        return self._establish(identity)

    # --------------------------------------------------------
    # Operations
    # --------------------------------------------------------
    def _establish(self, identity: Identity) -> Session:
        try:
            user = resolve_user(identity, self._store)
        except DataAccessFailure:
            self._set(None)
            raise

        if not user.is_active:
            self._set(None)
            self._safe_provider_sign_out(identity.access_token)
            raise AuthFailure("Account is inactive")

        session = Session(identity=identity, user=user)
        self._set(session)
        return self._current

    def sign_in(self, email: str, password: str) -> Session:
        identity = self._provider.sign_in(email, password)
        return self._establish(identity)

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Session:
        identity = self._provider.sign_up(email, password, display_name)
        return self._establish(identity)

    def restore(self, access_token: str) -> Optional[Session]:
        """Rebuild the session from a stored token (page load)."""
        identity = self._provider.get_identity(access_token)
        return self.handle_identity_change(identity)

    def refresh(self) -> Optional[Session]:
        """Re-read the current user's record, e.g. after a role reassignment."""
        if self._current is None:
            return None
        return self._establish(self._current.identity)

    def sign_out(self):
        token = self._current.access_token if self._current else None
        self._set(None)
        self._provider.sign_out(token)

    def _safe_provider_sign_out(self, token: Optional[str]):
        try:
            self._provider.sign_out(token)
        except ConsoleError as e:
            logger.warning(f"Provider sign-out failed: {e.message}")
