"""
Page routes.

Rendering is not part of this service; each page answers with a small JSON
description so the edge guard's redirects can be followed and checked.
"""

from fastapi import APIRouter, Depends

from footballbook.auth.models import TokenClaims
from footballbook.auth.service import AuthService

from .auth_middleware import require_session


def build_pages_router(user_service: AuthService, admin_service: AuthService) -> APIRouter:
    user_ns = user_service.namespace
    admin_ns = admin_service.namespace
    router = APIRouter(tags=["pages"])

    require_user = require_session(user_service, allow_header=user_ns.edge_accepts_header)
    require_admin = require_session(admin_service, allow_header=admin_ns.edge_accepts_header)

    @router.get("/")
    async def home():
        return {"page": "home", "login": user_ns.login_path, "register": user_ns.register_path}

    @router.get("/user-profile")
    async def user_profile(claims: TokenClaims = Depends(require_user)):
        return {"page": "user-profile", "user_id": claims.sub, "phone": claims.identifier}

    @router.get("/admin")
    async def admin_dashboard(claims: TokenClaims = Depends(require_admin)):
        return {"page": "admin", "admin_id": claims.sub, "email": claims.identifier}

    def _form_page(page: str, namespace: str, action: str):
        async def form_page():
            return {"page": page, "namespace": namespace, "action": action}

        return form_page

    router.add_api_route(user_ns.login_path, _form_page("login", user_ns.name, user_ns.api_prefix + "/login"), methods=["GET"])
    router.add_api_route(user_ns.register_path, _form_page("register", user_ns.name, user_ns.api_prefix + "/register"), methods=["GET"])
    router.add_api_route(admin_ns.login_path, _form_page("admin-login", admin_ns.name, admin_ns.api_prefix + "/login"), methods=["GET"])
    router.add_api_route(admin_ns.register_path, _form_page("admin-register", admin_ns.name, admin_ns.api_prefix + "/register"), methods=["GET"])

    return router
