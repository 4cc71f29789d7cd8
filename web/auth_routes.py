"""
Auth API routes.

One router per namespace, built from its AuthService:

    POST {prefix}/register   201 {success, message, user, token}
    POST {prefix}/login      200 {success, message, user, token}
    POST {prefix}/logout     200 {success, message}
    GET  {prefix}/me         200 {success, user}

Failures are {success: false, error} with the status of the error kind;
validation failures add details: [{field, message}].
"""

from typing import Any, Optional

from fastapi import APIRouter, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from footballbook.auth.errors import AuthError, AuthErrorKind
from footballbook.auth.models import TokenClaims
from footballbook.auth.service import AuthService
from footballbook.core.config import Settings
from footballbook.utils.logger import get_logger

from .auth_middleware import extract_token

logger = get_logger(__name__)

INVITE_HEADER = "X-Invite-Token"


def error_response(error: AuthError) -> JSONResponse:
    content: dict = {"success": False, "error": error.message}
    if error.kind is AuthErrorKind.VALIDATION:
        content["details"] = error.details
    return JSONResponse(status_code=error.status_code, content=content)


async def read_json_body(request: Request) -> Any:
    """Parsed JSON body, or None when it is missing or malformed (reported as field errors)."""
    try:
        return await request.json()
    except ValueError:
        logger.info("Malformed JSON body", path=request.url.path)
        return None


def build_auth_router(service: AuthService, settings: Settings) -> APIRouter:
    ns = service.namespace
    router = APIRouter(prefix=ns.api_prefix, tags=[f"auth:{ns.name}"])

    def _session_response(status_code: int, message: str, user: dict, token: str, set_cookie: bool) -> JSONResponse:
        response = JSONResponse(
            status_code=status_code,
            content={"success": True, "message": message, "user": user, "token": token},
        )
        if set_cookie and ns.issues_cookie:
            response.set_cookie(
                key=ns.cookie_name,
                value=token,
                max_age=int(ns.token_ttl.total_seconds()),
                httponly=True,
                secure=settings.is_production,
                samesite="strict",
                path="/",
            )
        return response

    def _actor(request: Request) -> Optional[TokenClaims]:
        token = extract_token(request, ns)
        if not token:
            return None
        checked = service.authenticate_token(token)
        return checked if isinstance(checked, TokenClaims) else None

    @router.post("/register")
    async def register(request: Request):
        """Create an account and sign it in"""
        payload = await read_json_body(request)
        actor = None
        invite = None
        if ns.gated_registration:
            actor = _actor(request)
            invite = request.headers.get(INVITE_HEADER)
            if not invite and isinstance(payload, dict) and isinstance(payload.get("invite"), str):
                invite = payload["invite"]

        result = await run_in_threadpool(service.handle_register, payload, actor, invite)
        if not result.ok:
            return error_response(result.error)
        # An admin creating another admin keeps their own cookie.
        return _session_response(
            status.HTTP_201_CREATED,
            "Registration successful",
            result.user,
            result.token,
            set_cookie=actor is None,
        )

    @router.post("/login")
    async def login(request: Request):
        """Check credentials and issue a token"""
        payload = await read_json_body(request)
        result = await run_in_threadpool(service.handle_login, payload)
        if not result.ok:
            return error_response(result.error)
        return _session_response(status.HTTP_200_OK, "Login successful", result.user, result.token, set_cookie=True)

    @router.post("/logout")
    async def logout():
        response = JSONResponse({"success": True, "message": "Logged out"})
        if ns.issues_cookie:
            response.delete_cookie(key=ns.cookie_name, path="/")
        return response

    @router.get("/me")
    async def me(request: Request):
        """Current account view for the presented token"""
        result = await run_in_threadpool(service.current_user, extract_token(request, ns))
        if not result.ok:
            return error_response(result.error)
        return {"success": True, "user": result.user}

    return router
