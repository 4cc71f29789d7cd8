from pathlib import Path
from typing import Callable, List, Tuple

import pytest
from fastapi.testclient import TestClient

from footballbook.auth.models import AdminRecord, UserRecord
from footballbook.auth.namespaces import ADMIN, USER
from footballbook.auth.passwords import PasswordHasher
from footballbook.auth.service import AuthService
from footballbook.auth.tokens import TokenIssuer
from footballbook.core.config import ENV_OVERRIDES, AppSettings, AuthSettings, LoggingSettings, Settings
from footballbook.stores import InMemoryCredentialStore

TEST_SIGNING_KEY = "test-signing-key-3f9a1c7e5b2d4f6a8c0e1b3d5f7a9c2e"
INVITE_TOKEN = "invite-2f8e1d"
START_TIME = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualScheduler:
    def __init__(self):
        self.pending: List[Tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        self.pending.append((delay, fn))

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, fn in pending:
            fn()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for name in list(ENV_OVERRIDES) + ["SETTINGS_FILE", "CORS_ORIGINS"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def issuer(clock) -> TokenIssuer:
    return TokenIssuer(TEST_SIGNING_KEY, clock=clock)


@pytest.fixture
def user_service(hasher, issuer) -> AuthService:
    return AuthService(USER, InMemoryCredentialStore(UserRecord), hasher, issuer)


@pytest.fixture
def admin_service(hasher, issuer) -> AuthService:
    return AuthService(ADMIN, InMemoryCredentialStore(AdminRecord), hasher, issuer, invite_token=INVITE_TOKEN)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app=AppSettings(environment="test"),
        auth=AuthSettings(signing_key=TEST_SIGNING_KEY, admin_invite_token=INVITE_TOKEN),
        logging=LoggingSettings(level="WARNING", format="text"),
        data_dir=str(tmp_path / "data"),
    )


@pytest.fixture
def app(settings, clock):
    from web.main import create_app

    return create_app(settings, clock=clock)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
