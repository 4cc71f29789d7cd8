import json
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from footballbook.auth.errors import AuthErrorKind, AuthFailure, AuthSuccess
from footballbook.auth.models import TokenClaims, UserRecord
from footballbook.auth.namespaces import ADMIN, USER
from footballbook.auth.service import AuthService
from footballbook.stores import InMemoryCredentialStore, open_store
from footballbook.utils.exceptions import StoreError
from footballbook.utils.logger import JsonFormatter

from conftest import INVITE_TOKEN, START_TIME

PHONE = "+15551234567"
PASSWORD = "Secret12"


def test_register_user(user_service, issuer):
    result = user_service.register(PHONE, PASSWORD, "Sam Striker")
    assert isinstance(result, AuthSuccess)
    assert result.user["phone"] == PHONE
    assert result.user["name"] == "Sam Striker"
    assert result.user["role"] == "user"
    assert "password_hash" not in result.user

    claims = issuer.verify(result.token)
    assert claims.sub == result.user["id"]
    assert claims.role == "user"
    assert claims.exp - claims.iat == 7 * 24 * 3600


def test_register_default_name(user_service):
    result = user_service.register(PHONE, PASSWORD)
    assert result.ok
    assert result.user["name"] == "User 4567"


def test_password_stored_as_bcrypt_digest(user_service):
    user_service.register(PHONE, PASSWORD)
    record = user_service.store.find_by_identifier(PHONE)
    assert record.password_hash != PASSWORD
    assert record.password_hash.startswith("$2b$12$")


def test_duplicate_registration_conflicts(user_service):
    assert user_service.register(PHONE, PASSWORD).ok
    second = user_service.register(PHONE, "Other123", "Someone Else")
    assert isinstance(second, AuthFailure)
    assert second.kind is AuthErrorKind.CONFLICT
    assert second.error.message == "Phone number already registered"
    assert second.error.status_code == 409
    assert user_service.store.count() == 1
    assert user_service.store.find_by_identifier(PHONE).name == "User 4567"


def test_validation_failure_reports_fields(user_service):
    result = user_service.register("123", "weak")
    assert result.kind is AuthErrorKind.VALIDATION
    assert result.error.message == "Validation failed"
    assert result.error.fields == {
        "phone": "Phone number must be at least 10 digits",
        "password": "Password must be at least 6 characters",
    }
    assert result.error.details == [
        {"field": "phone", "message": "Phone number must be at least 10 digits"},
        {"field": "password", "message": "Password must be at least 6 characters"},
    ]
    assert user_service.store.count() == 0


def test_login_success(user_service, issuer):
    registered = user_service.register(PHONE, PASSWORD)
    result = user_service.login(PHONE, PASSWORD)
    assert result.ok
    assert result.user == registered.user
    assert issuer.verify(result.token).sub == registered.user["id"]


def test_login_failures_are_indistinguishable(user_service):
    user_service.register(PHONE, PASSWORD)
    wrong_password = user_service.login(PHONE, "Wrong123")
    unknown_phone = user_service.login("+15559999999", PASSWORD)
    assert wrong_password == unknown_phone
    assert wrong_password.kind is AuthErrorKind.INVALID_CREDENTIALS
    assert wrong_password.error.message == "Invalid credentials"
    assert wrong_password.error.status_code == 401


def test_login_uses_identifier_alias(user_service):
    user_service.register(PHONE, PASSWORD)
    assert user_service.handle_login({"identifier": PHONE, "password": PASSWORD}).ok


def test_register_then_login_after_restart(tmp_path, hasher, issuer):
    first = AuthService(USER, open_store(USER, tmp_path), hasher, issuer)
    first.register(PHONE, PASSWORD)
    restarted = AuthService(USER, open_store(USER, tmp_path), hasher, issuer)
    assert restarted.login(PHONE, PASSWORD).ok


def test_store_failure_is_internal(hasher, issuer):
    class BrokenStore(InMemoryCredentialStore):
        def find_by_identifier(self, identifier):
            raise StoreError("disk on fire")

    service = AuthService(USER, BrokenStore(UserRecord), hasher, issuer)
    registered = service.register(PHONE, PASSWORD)
    assert registered.kind is AuthErrorKind.INTERNAL
    assert registered.error.message == "Registration failed"
    logged_in = service.login(PHONE, PASSWORD)
    assert logged_in.kind is AuthErrorKind.INTERNAL
    assert logged_in.error.message == "Authentication failed"


def test_concurrent_registration_single_winner(tmp_path, hasher, issuer):
    service = AuthService(USER, open_store(USER, tmp_path), hasher, issuer)
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: service.register(PHONE, PASSWORD), range(4)))
    assert sum(1 for r in results if r.ok) == 1
    assert all(r.kind is AuthErrorKind.CONFLICT for r in results if not r.ok)
    assert service.store.count() == 1


def test_concurrent_admin_bootstrap_single_winner(tmp_path, hasher, issuer):
    service = AuthService(ADMIN, open_store(ADMIN, tmp_path), hasher, issuer)

    def attempt(i):
        return service.register(f"a{i}@example.com", PASSWORD, "Anon")

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(4)))
    assert sum(1 for r in results if r.ok) == 1
    assert all(r.kind is AuthErrorKind.FORBIDDEN for r in results if not r.ok)
    assert service.store.count() == 1


def test_authenticate_token(user_service, admin_service, clock):
    token = user_service.register(PHONE, PASSWORD).token

    claims = user_service.authenticate_token(token)
    assert isinstance(claims, TokenClaims)

    wrong_namespace = admin_service.authenticate_token(token)
    assert wrong_namespace.kind is AuthErrorKind.FORBIDDEN

    assert user_service.authenticate_token(None).kind is AuthErrorKind.UNAUTHORIZED
    assert user_service.authenticate_token("junk").kind is AuthErrorKind.UNAUTHORIZED

    clock.advance(7 * 24 * 3600)
    expired = user_service.authenticate_token(token)
    assert expired.kind is AuthErrorKind.UNAUTHORIZED
    assert expired.error.message == "Invalid or expired session"


def test_wrong_namespace_log_keeps_role(user_service, admin_service, caplog):
    token = user_service.register(PHONE, PASSWORD).token
    with caplog.at_level(logging.WARNING, logger="footballbook.auth.service"):
        admin_service.authenticate_token(token)
    payload = json.loads(JsonFormatter().format(caplog.records[-1]))
    assert payload["presented_role"] == "user"
    assert payload["namespace"] == ADMIN.name


def test_current_user(user_service):
    registered = user_service.register(PHONE, PASSWORD)
    current = user_service.current_user(registered.token)
    assert current.ok
    assert current.user == registered.user


def test_current_user_for_deleted_account(user_service, issuer):
    from datetime import timedelta

    token = issuer.issue("gone", PHONE, "user", timedelta(days=1))
    assert user_service.current_user(token).kind is AuthErrorKind.UNAUTHORIZED


class TestAdminRegistration:
    def test_first_admin_bootstraps(self, admin_service):
        result = admin_service.register("Boss@Example.com", PASSWORD, "The Boss")
        assert result.ok
        assert result.user["email"] == "boss@example.com"
        assert result.user["role"] == "admin"

    def test_admin_token_lifetime(self, admin_service, issuer):
        result = admin_service.register("boss@example.com", PASSWORD, "The Boss")
        claims = issuer.verify(result.token)
        assert claims.exp - claims.iat == 24 * 3600
        assert claims.iat == int(START_TIME)

    def test_later_admins_need_permission(self, admin_service):
        admin_service.register("boss@example.com", PASSWORD, "The Boss")
        result = admin_service.register("intruder@example.com", PASSWORD, "Intruder")
        assert result.kind is AuthErrorKind.FORBIDDEN
        assert admin_service.store.count() == 1

    def test_existing_admin_can_add_admin(self, admin_service):
        boss = admin_service.register("boss@example.com", PASSWORD, "The Boss")
        actor = admin_service.authenticate_token(boss.token)
        result = admin_service.register("second@example.com", PASSWORD, "Second", actor=actor)
        assert result.ok

    def test_invite_token(self, admin_service):
        admin_service.register("boss@example.com", PASSWORD, "The Boss")
        assert admin_service.register("a@example.com", PASSWORD, "Invited", invite=INVITE_TOKEN).ok
        wrong = admin_service.register("b@example.com", PASSWORD, "Guess", invite="guess")
        assert wrong.kind is AuthErrorKind.FORBIDDEN

    def test_user_token_is_not_an_admin_actor(self, admin_service, user_service):
        admin_service.register("boss@example.com", PASSWORD, "The Boss")
        user_token = user_service.register(PHONE, PASSWORD).token
        actor = user_service.authenticate_token(user_token)
        result = admin_service.register("sneaky@example.com", PASSWORD, "Sneaky", actor=actor)
        assert result.kind is AuthErrorKind.FORBIDDEN

    def test_anonymous_duplicate_admin_is_forbidden(self, admin_service):
        # Without permission the gate answers first, so taken emails are not revealed.
        admin_service.register("boss@example.com", PASSWORD, "The Boss")
        result = admin_service.register("boss@example.com", PASSWORD, "Again")
        assert result.kind is AuthErrorKind.FORBIDDEN
        assert admin_service.store.count() == 1

    def test_duplicate_admin_email_any_case(self, admin_service):
        admin_service.register("boss@example.com", PASSWORD, "The Boss")
        result = admin_service.register("BOSS@example.com", PASSWORD, "Again", invite=INVITE_TOKEN)
        assert result.kind is AuthErrorKind.CONFLICT
        assert result.error.message == "Email already registered"

    def test_admin_name_required(self, admin_service):
        result = admin_service.register("boss@example.com", PASSWORD)
        assert result.error.fields == {"name": "Name is required"}


def test_ensure_account(admin_service):
    assert admin_service.ensure_account("seed@example.com", "Seeded123", name="Seed") is True
    assert admin_service.ensure_account("seed@example.com", "Seeded123") is False
    assert admin_service.login("seed@example.com", "Seeded123").ok


def test_ensure_account_rejects_invalid_input(admin_service):
    with pytest.raises(ValueError):
        admin_service.ensure_account("not-an-email", "Seeded123")
