"""
Request-edge route guard and FastAPI auth dependencies.
"""

from typing import Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import RedirectResponse
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from footballbook.auth.errors import AuthFailure, AuthErrorKind
from footballbook.auth.models import TokenClaims
from footballbook.auth.namespaces import Namespace
from footballbook.auth.route_table import RouteTable
from footballbook.auth.service import AuthService
from footballbook.utils.logger import get_logger

logger = get_logger(__name__)


def extract_token(conn: HTTPConnection, namespace: Namespace, allow_header: bool = True) -> Optional[str]:
    """Token from the Authorization header (if allowed) or the namespace cookie."""
    if allow_header:
        auth = conn.headers.get("authorization")
        if auth and auth.startswith("Bearer "):
            token = auth[7:].strip()
            if token:
                return token
    return conn.cookies.get(namespace.cookie_name) or None


class RouteGuardMiddleware:
    """
    Raw ASGI guard for page routes.

    Protected paths without a valid token of their namespace get a 302 to
    that namespace's login page (with ?redirect=); auth-only paths visited
    with a valid token get a 302 to the landing page. /api/* and unmatched
    paths pass straight through.
    """

    def __init__(self, app: ASGIApp, table: RouteTable, services: Dict[str, AuthService]):
        self.app = app
        self.table = table
        self.services = services

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path") or ""
        matched = self.table.match(path)
        if matched is None:
            await self.app(scope, receive, send)
            return

        ns = matched.namespace
        token = extract_token(HTTPConnection(scope), ns, allow_header=ns.edge_accepts_header)
        authenticated = False
        if token:
            checked = self.services[ns.name].authenticate_token(token)
            authenticated = isinstance(checked, TokenClaims)

        target = self.table.decide(path, authenticated, ns)
        if target is None:
            await self.app(scope, receive, send)
            return

        logger.info("Edge redirect", path=path, target=target, namespace=ns.name)
        response = RedirectResponse(target, status_code=status.HTTP_302_FOUND)
        await response(scope, receive, send)


def require_session(service: AuthService, allow_header: bool = True):
    """Dependency factory: the caller's verified claims for the service's namespace, or 401/403."""

    async def session_checker(request: Request) -> TokenClaims:
        token = extract_token(request, service.namespace, allow_header=allow_header)
        checked = service.authenticate_token(token)
        if isinstance(checked, AuthFailure):
            headers = {"WWW-Authenticate": "Bearer"} if checked.kind is AuthErrorKind.UNAUTHORIZED else None
            raise HTTPException(
                status_code=checked.error.status_code,
                detail=checked.error.message,
                headers=headers,
            )
        return checked

    return session_checker
