"""FastAPI application for FootballBook auth"""

import os
import time
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from footballbook import __version__
from footballbook.auth.namespaces import build_namespaces
from footballbook.auth.passwords import PasswordHasher
from footballbook.auth.route_table import RouteTable
from footballbook.auth.service import AuthService
from footballbook.auth.tokens import TokenIssuer
from footballbook.core.config import Settings, load_settings
from footballbook.stores import CredentialStore, open_store
from footballbook.utils.logger import get_logger, setup_logging

from .auth_middleware import RouteGuardMiddleware
from .auth_routes import build_auth_router
from .pages import build_pages_router

logger = get_logger(__name__)


def _seed_admin(service: AuthService, settings: Settings) -> None:
    """Create the ADMIN_SEED_* account if configured and missing."""
    email = settings.auth.admin_seed_email
    password = settings.auth.admin_seed_password
    if not email or not password:
        return
    created = service.ensure_account(email, password, name=settings.auth.admin_seed_name)
    if created:
        logger.info("Seed admin created", email=email)


def create_app(
    settings: Optional[Settings] = None,
    user_store: Optional[CredentialStore] = None,
    admin_store: Optional[CredentialStore] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Build the app: services for both namespaces, their API routers, the
    page routes and the edge guard.

    Raises ConfigError on a bad signing key outside development.
    """
    settings = settings or load_settings()
    setup_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )

    user_ns, admin_ns = build_namespaces(settings)
    data_dir = Path(settings.data_dir)
    if user_store is None:
        user_store = open_store(user_ns, data_dir)
    if admin_store is None:
        admin_store = open_store(admin_ns, data_dir)

    hasher = PasswordHasher(rounds=settings.auth.bcrypt_rounds)
    issuer = TokenIssuer.from_settings(settings, clock=clock)
    user_service = AuthService(user_ns, user_store, hasher, issuer)
    admin_service = AuthService(
        admin_ns,
        admin_store,
        hasher,
        issuer,
        invite_token=settings.auth.admin_invite_token,
    )
    _seed_admin(admin_service, settings)

    app = FastAPI(
        title=f"{settings.app.name} Auth",
        description="Phone-based user auth and email-based admin auth",
        version=__version__,
    )
    app.state.settings = settings
    app.state.services = {user_ns.name: user_service, admin_ns.name: admin_service}

    cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if settings.is_production else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RouteGuardMiddleware,
        table=RouteTable((user_ns, admin_ns)),
        services=app.state.services,
    )

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "version": __version__}

    # Admin router first: its prefix is longer.
    app.include_router(build_auth_router(admin_service, settings))
    app.include_router(build_auth_router(user_service, settings))
    app.include_router(build_pages_router(user_service, admin_service))

    logger.info(
        "Application created",
        environment=settings.app.environment,
        data_dir=str(data_dir),
    )
    return app
