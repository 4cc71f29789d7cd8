import pytest
from fastapi.testclient import TestClient

PHONE = "5551234567"
PASSWORD = "Secret12"


def _user_token(client: TestClient) -> str:
    return client.post("/api/auth/register", json={"phone": PHONE, "password": PASSWORD}).json()["token"]


def _admin_token(client: TestClient) -> str:
    res = client.post(
        "/api/auth/admin/register",
        json={"email": "boss@example.com", "password": PASSWORD, "name": "The Boss"},
    )
    return res.json()["token"]


@pytest.mark.parametrize(
    "path,target",
    [
        ("/user-profile", "/auth/login?redirect=%2Fuser-profile"),
        ("/user-profile/settings", "/auth/login?redirect=%2Fuser-profile%2Fsettings"),
        ("/admin", "/a/login?redirect=%2Fadmin"),
        ("/admin/users", "/a/login?redirect=%2Fadmin%2Fusers"),
    ],
)
def test_protected_paths_redirect_anonymous(client: TestClient, path, target):
    res = client.get(path, follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"] == target


@pytest.mark.parametrize("path", ["/", "/auth/login", "/auth/register", "/a/login", "/a/register", "/administrator"])
def test_public_paths_pass(client: TestClient, path):
    res = client.get(path, follow_redirects=False)
    assert res.status_code in (200, 404)
    assert "location" not in res.headers


def test_user_bearer_opens_profile(client: TestClient):
    token = _user_token(client)
    res = client.get("/user-profile", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert res.status_code == 200
    assert res.json()["phone"] == PHONE


def test_user_cookie_opens_profile(client: TestClient):
    client.cookies.set("auth_token", _user_token(client))
    res = client.get("/user-profile", follow_redirects=False)
    assert res.status_code == 200


def test_admin_cookie_opens_dashboard(client: TestClient):
    _admin_token(client)
    res = client.get("/admin", follow_redirects=False)
    assert res.status_code == 200
    assert res.json()["email"] == "boss@example.com"


def test_admin_edge_ignores_bearer_header(client: TestClient):
    token = _admin_token(client)
    anonymous = TestClient(client.app)
    res = anonymous.get("/admin", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert res.status_code == 302


def test_user_token_does_not_open_admin(client: TestClient):
    anonymous = TestClient(client.app)
    anonymous.cookies.set("admin_token", _user_token(client))
    res = anonymous.get("/admin", follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"].startswith("/a/login")


def test_admin_token_does_not_open_profile(client: TestClient):
    token = _admin_token(client)
    res = client.get("/user-profile", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert res.status_code == 302


def test_expired_admin_cookie_redirects(client: TestClient, clock):
    _admin_token(client)
    clock.advance(24 * 3600)
    res = client.get("/admin", follow_redirects=False)
    assert res.status_code == 302


def test_authenticated_visitor_bounced_from_login_pages(client: TestClient):
    token = _user_token(client)
    res = client.get("/auth/login", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"] == "/"

    _admin_token(client)
    res = client.get("/a/register", follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"] == "/admin"


def test_api_paths_are_never_redirected(client: TestClient):
    res = client.get("/api/auth/admin/me", follow_redirects=False)
    assert res.status_code == 401


def test_redirect_lands_on_login_page(client: TestClient):
    res = client.get("/user-profile")
    assert res.status_code == 200
    assert res.json()["page"] == "login"
