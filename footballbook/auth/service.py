"""
Authentication service layer.

One AuthService per namespace (regular users by phone, admins by email):
- register / login return AuthSuccess(user view, token) or AuthFailure
- passwords are stored only as bcrypt hashes
- tokens are signed JWTs with the namespace TTL (7 days users, 24 hours admins)

Nothing here raises to the caller. Unexpected faults (unreadable store,
hashing or signing errors) are logged and returned as INTERNAL.
"""

from __future__ import annotations

import hmac
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from ..stores.credential_store import CredentialStore
from ..utils.exceptions import DuplicateIdentifierError, StoreNotEmptyError
from ..utils.logger import get_logger
from .errors import (
    INVALID_CREDENTIALS_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
    AuthErrorKind,
    AuthFailure,
    AuthResult,
    AuthSuccess,
    failure,
)
from .models import AdminRecord, CredentialRecord, TokenClaims, UserRecord
from .namespaces import IdentifierKind, Namespace
from .passwords import PasswordHasher
from .schemas import validate_payload
from .tokens import TokenIssuer

logger = get_logger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Not authenticated"
INVALID_SESSION_MESSAGE = "Invalid or expired session"
ACCESS_DENIED_MESSAGE = "Access denied"
REGISTRATION_CLOSED_MESSAGE = "Admin registration requires an existing admin session or a valid invite"
DEFAULT_ADMIN_NAME = "Admin User"

# Used to spend the same bcrypt time on unknown identifiers as on known ones.
_TIMING_PASSWORD = "timing-equaliser"


class AuthService:
    """Register, login and token checks for a single namespace."""

    def __init__(
        self,
        namespace: Namespace,
        store: CredentialStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        invite_token: Optional[str] = None,
    ):
        self.namespace = namespace
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self._invite_token = invite_token or None
        self._timing_hash: Optional[str] = None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        identifier: Any,
        password: Any,
        name: Any = None,
        *,
        actor: Optional[TokenClaims] = None,
        invite: Optional[str] = None,
    ) -> AuthResult:
        """Create an account and return its view plus a fresh token."""
        payload = {self.namespace.identifier_field: identifier, "password": password}
        if name is not None:
            payload["name"] = name
        return self.handle_register(payload, actor=actor, invite=invite)

    def handle_register(
        self,
        payload: Any,
        actor: Optional[TokenClaims] = None,
        invite: Optional[str] = None,
    ) -> AuthResult:
        """Registration from a raw request body (accepts the `identifier` alias)."""
        ns = self.namespace
        data, errors = validate_payload(ns, "register", payload)
        if errors:
            logger.info("Registration rejected", namespace=ns.name, reason="validation", fields=sorted(errors))
            return failure(AuthErrorKind.VALIDATION, VALIDATION_FAILED_MESSAGE, errors)

        identifier = getattr(data, ns.identifier_field)
        try:
            # Without a session or invite, only the first account may self-register.
            bootstrap = ns.gated_registration and not self._registration_authorized(actor, invite)
            if bootstrap and self.store.count() > 0:
                return self._registration_closed()

            if self.store.find_by_identifier(identifier) is not None:
                return self._conflict()

            record = self._build_record(data)
            try:
                self.store.insert(record, require_empty=bootstrap)
            except StoreNotEmptyError:
                # Another bootstrap registration got there first.
                return self._registration_closed()
            except DuplicateIdentifierError:
                # Lost a race with a concurrent registration.
                return self._conflict()

            token = self._issue(record)
        except Exception:
            logger.exception("Registration failed", namespace=ns.name)
            return failure(AuthErrorKind.INTERNAL, "Registration failed")

        logger.info("Account registered", namespace=ns.name, record_id=record.id)
        return AuthSuccess(user=record.public_view(), token=token)

    def _registration_authorized(self, actor: Optional[TokenClaims], invite: Optional[str]) -> bool:
        if actor is not None and actor.role == self.namespace.role:
            return True
        if self._invite_token and invite:
            return hmac.compare_digest(self._invite_token.encode("utf-8"), invite.encode("utf-8"))
        return False

    def _build_record(self, data: BaseModel) -> CredentialRecord:
        password_hash = self.hasher.hash(data.password)
        if self.namespace.identifier_kind is IdentifierKind.PHONE:
            return UserRecord(
                phone=data.phone,
                name=data.name or f"User {data.phone[-4:]}",
                password_hash=password_hash,
            )
        return AdminRecord(email=data.email, name=data.name or DEFAULT_ADMIN_NAME, password_hash=password_hash)

    def _registration_closed(self) -> AuthFailure:
        logger.warning("Registration rejected", namespace=self.namespace.name, reason="not_permitted")
        return failure(AuthErrorKind.FORBIDDEN, REGISTRATION_CLOSED_MESSAGE)

    def _conflict(self) -> AuthFailure:
        logger.info("Registration rejected", namespace=self.namespace.name, reason="duplicate")
        return failure(
            AuthErrorKind.CONFLICT,
            f"{self.namespace.identifier_label} already registered",
        )

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, identifier: Any, password: Any) -> AuthResult:
        """Authenticate and return the account view plus a fresh token."""
        return self.handle_login({self.namespace.identifier_field: identifier, "password": password})

    def handle_login(self, payload: Any) -> AuthResult:
        """Login from a raw request body (accepts the `identifier` alias)."""
        ns = self.namespace
        data, errors = validate_payload(ns, "login", payload)
        if errors:
            return failure(AuthErrorKind.VALIDATION, VALIDATION_FAILED_MESSAGE, errors)

        identifier = getattr(data, ns.identifier_field)
        try:
            record = self.store.find_by_identifier(identifier)
            if record is None:
                self.hasher.verify(data.password, self._get_timing_hash())
                return self._invalid_credentials()
            if not self.hasher.verify(data.password, record.password_hash):
                return self._invalid_credentials()
            token = self._issue(record)
        except Exception:
            logger.exception("Authentication failed", namespace=ns.name)
            return failure(AuthErrorKind.INTERNAL, "Authentication failed")

        logger.info("Login succeeded", namespace=ns.name, record_id=record.id)
        return AuthSuccess(user=record.public_view(), token=token)

    def _invalid_credentials(self) -> AuthFailure:
        # Same kind and message whether the identifier exists or not.
        logger.info("Login rejected", namespace=self.namespace.name)
        return failure(AuthErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

    def _get_timing_hash(self) -> str:
        if self._timing_hash is None:
            self._timing_hash = self.hasher.hash(_TIMING_PASSWORD)
        return self._timing_hash

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _issue(self, record: CredentialRecord) -> str:
        return self.issuer.issue(
            subject=record.id,
            identifier=record.identifier,
            role=self.namespace.role,
            ttl=self.namespace.token_ttl,
        )

    def authenticate_token(self, token: Optional[str]) -> Union[TokenClaims, AuthFailure]:
        """
        Verify a bearer token for this namespace.

        UNAUTHORIZED for missing, malformed, forged or expired tokens;
        FORBIDDEN for a valid token that belongs to the other namespace.
        """
        if not token:
            return failure(AuthErrorKind.UNAUTHORIZED, NOT_AUTHENTICATED_MESSAGE)
        claims = self.issuer.verify(token)
        if claims is None:
            return failure(AuthErrorKind.UNAUTHORIZED, INVALID_SESSION_MESSAGE)
        if claims.role != self.namespace.role:
            logger.warning(
                "Token used against the wrong namespace",
                namespace=self.namespace.name,
                presented_role=claims.role,
            )
            return failure(AuthErrorKind.FORBIDDEN, ACCESS_DENIED_MESSAGE)
        return claims

    def current_user(self, token: Optional[str]) -> AuthResult:
        """Resolve a token to the live account view."""
        checked = self.authenticate_token(token)
        if isinstance(checked, AuthFailure):
            return checked
        try:
            record = self.store.find_by_id(checked.sub)
        except Exception:
            logger.exception("Session lookup failed", namespace=self.namespace.name)
            return failure(AuthErrorKind.INTERNAL, "Session lookup failed")
        if record is None:
            # Token outlived its account.
            return failure(AuthErrorKind.UNAUTHORIZED, INVALID_SESSION_MESSAGE)
        return AuthSuccess(user=record.public_view(), token=token or "")

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_account(self, identifier: str, password: str, name: Optional[str] = None) -> bool:
        """
        Create an account outside the public flow (startup seeding).

        Returns True if it was created, False if it already existed.
        Raises on invalid input or store failure; startup should stop.
        """
        payload: Mapping[str, Any] = {self.namespace.identifier_field: identifier, "password": password}
        data, errors = validate_payload(self.namespace, "login", payload)
        if errors:
            raise ValueError(f"Invalid seed account: {errors}")
        if self.store.find_by_identifier(getattr(data, self.namespace.identifier_field)) is not None:
            return False
        if self.namespace.identifier_kind is IdentifierKind.PHONE:
            record: CredentialRecord = UserRecord(
                phone=data.phone,
                name=name or f"User {data.phone[-4:]}",
                password_hash=self.hasher.hash(data.password),
            )
        else:
            record = AdminRecord(
                email=data.email,
                name=name or DEFAULT_ADMIN_NAME,
                password_hash=self.hasher.hash(data.password),
            )
        try:
            self.store.insert(record)
        except DuplicateIdentifierError:
            return False
        logger.info("Seed account created", namespace=self.namespace.name, record_id=record.id)
        return True
