"""
Auth records and token claims.

UserRecord and AdminRecord share the CredentialRecord shape but are kept in
separate store collections; the identifier property is what the store keys
on (phone for users, lower-cased email for admins).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialRecord(BaseModel):
    """Common fields of every stored account."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def identifier(self) -> str:
        raise NotImplementedError

    def public_view(self) -> Dict[str, Any]:
        """The record as it may leave the server: never includes the digest."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class UserRecord(CredentialRecord):
    """Regular user, identified by phone number."""

    phone: str
    role: Literal["user"] = "user"
    # Owned by the booking side; auth only creates them at zero.
    games_played: int = 0
    vouchers: int = 0

    @property
    def identifier(self) -> str:
        return self.phone


class AdminRecord(CredentialRecord):
    """Admin account, identified by email."""

    email: str
    role: Literal["admin"] = "admin"

    @property
    def identifier(self) -> str:
        return self.email.lower()


class TokenClaims(BaseModel):
    """Payload carried inside a signed token."""

    sub: str
    identifier: str
    role: str
    iat: int
    exp: int
