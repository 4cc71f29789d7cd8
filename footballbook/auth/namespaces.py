"""
Auth namespaces.

FootballBook runs two independent auth stacks, regular users (phone) and
admins (email). Everything that differs between them lives on a Namespace;
services, session managers, guards and routers are built once and
parametrised by it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
from typing import Tuple

from ..core.config import Settings


class IdentifierKind(str, Enum):
    PHONE = "phone"
    EMAIL = "email"


@dataclass(frozen=True)
class Namespace:
    name: str
    identifier_kind: IdentifierKind
    role: str
    token_ttl: timedelta
    storage_prefix: str
    cookie_name: str
    api_prefix: str
    login_path: str
    register_path: str
    landing_path: str
    protected_prefixes: Tuple[str, ...]
    auth_only_paths: Tuple[str, ...]
    collection: str
    require_name: bool = False
    gated_registration: bool = False
    edge_accepts_header: bool = True
    issues_cookie: bool = False

    @property
    def identifier_field(self) -> str:
        return self.identifier_kind.value

    @property
    def token_key(self) -> str:
        return f"{self.storage_prefix}_token"

    @property
    def user_key(self) -> str:
        return f"{self.storage_prefix}_user"

    @property
    def identifier_label(self) -> str:
        return "Phone number" if self.identifier_kind is IdentifierKind.PHONE else "Email"


USER = Namespace(
    name="user",
    identifier_kind=IdentifierKind.PHONE,
    role="user",
    token_ttl=timedelta(days=7),
    storage_prefix="auth",
    cookie_name="auth_token",
    api_prefix="/api/auth",
    login_path="/auth/login",
    register_path="/auth/register",
    landing_path="/",
    protected_prefixes=("/user-profile",),
    auth_only_paths=("/auth/login", "/auth/register"),
    collection="users",
)

ADMIN = Namespace(
    name="admin",
    identifier_kind=IdentifierKind.EMAIL,
    role="admin",
    token_ttl=timedelta(hours=24),
    storage_prefix="admin",
    cookie_name="admin_token",
    api_prefix="/api/auth/admin",
    login_path="/a/login",
    register_path="/a/register",
    landing_path="/admin",
    protected_prefixes=("/admin",),
    auth_only_paths=("/a/login", "/a/register"),
    collection="admins",
    require_name=True,
    gated_registration=True,
    edge_accepts_header=False,
    issues_cookie=True,
)


def build_namespaces(settings: Settings) -> Tuple[Namespace, Namespace]:
    """Return (user, admin) namespaces with TTLs taken from settings."""
    user = replace(USER, token_ttl=timedelta(seconds=settings.auth.user_token_ttl_seconds))
    admin = replace(ADMIN, token_ttl=timedelta(seconds=settings.auth.admin_token_ttl_seconds))
    return user, admin
