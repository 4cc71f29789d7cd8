"""
Route table shared by the request-edge guard and the component guard.

Protected paths need a valid token of their namespace; auth-only paths
(login/register forms) bounce visitors who already have one. Everything
else passes through unchecked.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple
from urllib.parse import urlencode

from .namespaces import Namespace

API_PREFIX = "/api/"


class RouteKind(str, Enum):
    PROTECTED = "protected"
    AUTH_ONLY = "auth_only"


@dataclass(frozen=True)
class RouteMatch:
    namespace: Namespace
    kind: RouteKind


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def login_redirect(namespace: Namespace, original_path: str) -> str:
    """Login URL that brings the visitor back to original_path afterwards."""
    return f"{namespace.login_path}?{urlencode({'redirect': original_path})}"


class RouteTable:
    def __init__(self, namespaces: Iterable[Namespace]):
        self.namespaces: Tuple[Namespace, ...] = tuple(namespaces)

    def match(self, path: str) -> Optional[RouteMatch]:
        if path.startswith(API_PREFIX):
            return None
        for ns in self.namespaces:
            if any(_matches(path, p) for p in ns.protected_prefixes):
                return RouteMatch(ns, RouteKind.PROTECTED)
        for ns in self.namespaces:
            if any(_matches(path, p) for p in ns.auth_only_paths):
                return RouteMatch(ns, RouteKind.AUTH_ONLY)
        return None

    def decide(self, path: str, authenticated: bool, namespace: Namespace) -> Optional[str]:
        """
        Redirect target for a matched path, or None to let the request through.

        `authenticated` must already be the verdict for `namespace`.
        """
        matched = self.match(path)
        if matched is None or matched.namespace.name != namespace.name:
            return None
        if matched.kind is RouteKind.PROTECTED and not authenticated:
            return login_redirect(namespace, path)
        if matched.kind is RouteKind.AUTH_ONLY and authenticated:
            return namespace.landing_path
        return None
