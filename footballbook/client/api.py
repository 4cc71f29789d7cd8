"""HTTP client for the auth API"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from ..auth.namespaces import Namespace
from ..utils.exceptions import ApiError, NetworkError
from ..utils.logger import get_logger
from .session import SessionManager

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class AuthClient:
    """
    Talks to one namespace's auth endpoints.

    `http` is anything with a requests-style request() method: a
    requests.Session in production, a FastAPI TestClient in tests.
    Failures raise NetworkError (no response) or ApiError (non-2xx);
    nothing is retried.
    """

    def __init__(
        self,
        namespace: Namespace,
        base_url: str = "",
        http: Any = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.namespace = namespace
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Request failed", method=method, path=path, error=str(e))
            raise NetworkError(str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, body.get("error"), body.get("details"))
        return body

    def register(self, identifier: str, password: str, name: Optional[str] = None) -> Dict[str, Any]:
        """POST register; returns the body with `user` and `token`."""
        payload: Dict[str, Any] = {self.namespace.identifier_field: identifier, "password": password}
        if name:
            payload["name"] = name
        return self._send("POST", f"{self.namespace.api_prefix}/register", json=payload)

    def login(self, identifier: str, password: str) -> Dict[str, Any]:
        payload = {self.namespace.identifier_field: identifier, "password": password}
        return self._send("POST", f"{self.namespace.api_prefix}/login", json=payload)

    def logout(self, session: Optional[SessionManager] = None) -> Dict[str, Any]:
        headers = self._auth_headers(session) if session is not None else {}
        return self._send("POST", f"{self.namespace.api_prefix}/logout", headers=headers)

    def me(self, session: SessionManager) -> Dict[str, Any]:
        return self.authenticated_request("GET", f"{self.namespace.api_prefix}/me", session)

    @staticmethod
    def _auth_headers(session: SessionManager) -> Dict[str, str]:
        token = session.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def authenticated_request(
        self, method: str, path: str, session: SessionManager, **kwargs: Any
    ) -> Dict[str, Any]:
        """
        Request with the stored bearer token attached.

        A 401/403 surfaces as ApiError like any other failure; hand it to
        ErrorBridge.handle() to clear the session and redirect.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(self._auth_headers(session))
        return self._send(method, path, headers=headers, **kwargs)
