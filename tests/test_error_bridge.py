from datetime import timedelta

import pytest
import requests

from footballbook.auth.namespaces import ADMIN, USER
from footballbook.client.api import AuthClient
from footballbook.client.errors import (
    ErrorBridge,
    ErrorInfo,
    ErrorKind,
    classify,
    handle_validation_errors,
    user_friendly_message,
)
from footballbook.client.events import EventBus
from footballbook.client.forms import AuthForm, FormErrors
from footballbook.client.navigation import HistoryNavigator
from footballbook.client.notifications import Notifier
from footballbook.client.session import SessionManager
from footballbook.client.storage import MemoryStorage
from footballbook.utils.exceptions import ApiError, NetworkError

from conftest import ManualScheduler

USER_VIEW = {"id": "u-1", "phone": "5551234567", "name": "Sam", "role": "user"}


@pytest.mark.parametrize(
    "error,kind",
    [
        (NetworkError("connection refused"), ErrorKind.NETWORK),
        (requests.ConnectionError("refused"), ErrorKind.NETWORK),
        (requests.Timeout("slow"), ErrorKind.NETWORK),
        (ApiError(400, "Validation failed"), ErrorKind.VALIDATION),
        (ApiError(422), ErrorKind.VALIDATION),
        (ApiError(401, "Invalid credentials"), ErrorKind.UNAUTHORIZED),
        (ApiError(403), ErrorKind.FORBIDDEN),
        (ApiError(404), ErrorKind.NOT_FOUND),
        (ApiError(429), ErrorKind.RATE_LIMITED),
        (ApiError(500), ErrorKind.SERVER),
        (ApiError(503), ErrorKind.SERVER),
        (ApiError(409, "Phone number already registered"), ErrorKind.UNKNOWN),
        ({"status": 401}, ErrorKind.UNAUTHORIZED),
        ({"error": "odd"}, ErrorKind.UNKNOWN),
        ("plain string", ErrorKind.UNKNOWN),
        (ValueError("boom"), ErrorKind.UNKNOWN),
        (None, ErrorKind.UNKNOWN),
        (42, ErrorKind.UNKNOWN),
        (object(), ErrorKind.UNKNOWN),
    ],
)
def test_classify_is_total(error, kind):
    info = classify(error)
    assert isinstance(info, ErrorInfo)
    assert info.kind is kind
    assert info.message


def test_classify_keeps_server_message_and_fields():
    info = classify(
        ApiError(
            400,
            "Validation failed",
            [
                {"field": "phone", "message": "Invalid phone number format"},
                {"field": "phone", "message": "second message"},
                {"field": "password", "message": "Password is required"},
            ],
        )
    )
    assert info.message == "Validation failed"
    assert info.status == 400
    assert info.fields == {"phone": "Invalid phone number format", "password": "Password is required"}

    conflict = classify(ApiError(409, "Phone number already registered"))
    assert conflict.message == "Phone number already registered"


def test_handle_validation_errors_accepts_paths():
    assert handle_validation_errors([{"path": ["email"], "message": "Invalid email format"}]) == {
        "email": "Invalid email format"
    }
    assert handle_validation_errors("nope") == {}
    assert handle_validation_errors([{"field": "x"}, 3]) == {}


def test_user_friendly_message():
    assert user_friendly_message(classify(ApiError(500))).startswith("Our servers")
    assert user_friendly_message(classify("custom")) == "custom"


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def navigator():
    return HistoryNavigator()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def session(navigator, clock):
    return SessionManager(USER, MemoryStorage(), EventBus(), navigator, clock=clock)


@pytest.fixture
def bridge(notifier, session, navigator, scheduler):
    return ErrorBridge(notifier, session, navigator, scheduler=scheduler)


def _login(session, issuer):
    session.set_session(issuer.issue("rec-1", "x", "user", timedelta(days=1)), USER_VIEW)


def test_validation_errors_go_to_form(bridge, notifier):
    form = FormErrors()
    info = bridge.handle(ApiError(400, "Validation failed", [{"field": "phone", "message": "Bad"}]), form=form)
    assert info.kind is ErrorKind.VALIDATION
    assert form.get("phone") == "Bad"
    assert notifier.notifications == []


def test_validation_without_form_is_a_toast(bridge, notifier):
    bridge.handle(ApiError(400, "Validation failed", [{"field": "phone", "message": "Bad"}]))
    assert [n.type for n in notifier.notifications] == ["error"]


def test_unauthorized_forces_logout(bridge, notifier, session, navigator, scheduler, issuer):
    _login(session, issuer)
    bridge.handle(ApiError(401, "Invalid or expired session"))

    assert session.get_token() is None
    assert notifier.notifications[-1].message == "Your session has expired. Please login again."
    # Redirect waits for the scheduler.
    assert navigator.current_url == "/"
    assert scheduler.pending[0][0] == 2.0
    scheduler.run_all()
    assert navigator.current_url == "/auth/login"


def test_forbidden_forces_logout_for_admin(notifier, navigator, scheduler, clock, issuer):
    admin_session = SessionManager(ADMIN, MemoryStorage(), navigator=navigator, clock=clock)
    admin_session.set_session(issuer.issue("a-1", "boss@example.com", "admin", timedelta(hours=1)), {})
    bridge = ErrorBridge(notifier, admin_session, navigator, scheduler=scheduler, redirect_delay=0.5)

    bridge.handle(ApiError(403))
    assert admin_session.get_token() is None
    scheduler.run_all()
    assert navigator.current_url == "/a/login"


@pytest.mark.parametrize("error", [NetworkError("down"), ApiError(500), ApiError(409, "Conflict"), "odd"])
def test_other_errors_leave_session_alone(bridge, notifier, session, scheduler, issuer, error):
    _login(session, issuer)
    bridge.handle(error)
    assert session.is_authenticated()
    assert len(notifier.notifications) == 1
    assert scheduler.pending == []


def test_with_error_handling(bridge, notifier):
    assert bridge.with_error_handling(lambda: {"x": 1}) == (True, {"x": 1}, None)

    def failing():
        raise NetworkError("down")

    ok, data, info = bridge.with_error_handling(failing)
    assert ok is False
    assert data is None
    assert info.kind is ErrorKind.NETWORK
    assert len(notifier.notifications) == 1


def test_notifier_helpers(notifier):
    received = []
    notifier.on_notify(received.append)
    first = notifier.success("Saved")
    notifier.warning("Careful", "mind the gap", duration=1000)
    assert [n.type for n in notifier.notifications] == ["success", "warning"]
    assert notifier.notifications[1].duration == 1000
    assert notifier.notifications[0].duration == 5000
    assert len(received) == 2

    notifier.remove(first)
    assert [n.title for n in notifier.notifications] == ["Careful"]
    notifier.clear_all()
    assert notifier.notifications == []

    with pytest.raises(ValueError):
        notifier.add("shout", "Nope")


class TestAuthForm:
    @pytest.fixture
    def form(self, client, session, bridge):
        return AuthForm(AuthClient(USER, http=client), session, bridge)

    def test_register_stores_session(self, form, session):
        assert form.register("5551234567", "Secret12", name="Sam") is True
        assert session.is_authenticated()
        assert session.get_user()["name"] == "Sam"
        assert form.submitting is False

    def test_field_errors_populate_form(self, form, notifier, session):
        assert form.register("123", "Secret12") is False
        assert form.errors.get("phone") == "Phone number must be at least 10 digits"
        assert notifier.notifications == []
        assert not session.is_authenticated()

    def test_wrong_password_is_a_toast_not_a_logout(self, form, notifier, scheduler):
        form.register("5551234567", "Secret12")
        assert form.login("5551234567", "Wrong123") is False
        assert form.last_error.kind is ErrorKind.UNAUTHORIZED
        assert notifier.notifications[-1].message == "Invalid credentials"
        assert scheduler.pending == []

    def test_duplicate_is_a_toast(self, form, notifier):
        form.register("5551234567", "Secret12")
        assert form.register("5551234567", "Secret12") is False
        assert notifier.notifications[-1].message == "Phone number already registered"

    def test_response_after_dispose_is_discarded(self, session, bridge, notifier):
        class SlowClient:
            def __init__(self):
                self.form = None

            def login(self, identifier, password):
                self.form.dispose()
                return {"token": "t", "user": USER_VIEW}

        slow = SlowClient()
        form = AuthForm(slow, session, bridge)
        slow.form = form
        assert form.login("5551234567", "Secret12") is False
        assert session.get_token() is None

    def test_failure_after_dispose_is_discarded(self, session, bridge, notifier):
        class FailingClient:
            def __init__(self):
                self.form = None

            def login(self, identifier, password):
                self.form.dispose()
                raise ApiError(401, "Invalid credentials")

        failing = FailingClient()
        form = AuthForm(failing, session, bridge)
        failing.form = form
        assert form.login("5551234567", "Secret12") is False
        assert notifier.notifications == []


class TestAuthClient:
    def test_me_with_session(self, client, session):
        api = AuthClient(USER, http=client)
        body = api.register("5551234567", "Secret12")
        session.set_session(body["token"], body["user"])
        assert api.me(session)["user"]["phone"] == "5551234567"

    def test_authenticated_request_raises_on_401(self, client, session):
        api = AuthClient(USER, http=client)
        with pytest.raises(ApiError) as exc:
            api.me(session)
        assert exc.value.status == 401

    def test_transport_failure_is_network_error(self):
        class DeadHttp:
            def request(self, method, url, **kwargs):
                raise requests.ConnectionError("refused")

        api = AuthClient(ADMIN, base_url="http://localhost:1", http=DeadHttp())
        with pytest.raises(NetworkError):
            api.login("boss@example.com", "Secret12")

    def test_urls_follow_namespace(self):
        seen = []

        class RecordingHttp:
            def request(self, method, url, **kwargs):
                seen.append((method, url, kwargs["json"], kwargs["timeout"]))
                raise requests.Timeout("slow")

        api = AuthClient(ADMIN, base_url="http://api.test/", http=RecordingHttp(), timeout=3.0)
        with pytest.raises(NetworkError):
            api.register("boss@example.com", "Secret12", "Boss")
        assert seen == [
            (
                "POST",
                "http://api.test/api/auth/admin/register",
                {"email": "boss@example.com", "password": "Secret12", "name": "Boss"},
                3.0,
            )
        ]
