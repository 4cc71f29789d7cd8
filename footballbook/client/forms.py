"""
Login/register form controller.

Submits credentials through the API client, stores the session on success
and routes failures through the error bridge. A response that arrives after
the form was disposed, or after a newer submit started, is discarded.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from ..utils.logger import get_logger
from .api import AuthClient
from .errors import ErrorBridge, ErrorInfo
from .session import SessionManager

logger = get_logger(__name__)


class FormErrors:
    """Field name -> message, as shown under each input."""

    def __init__(self) -> None:
        self.fields: Dict[str, str] = {}

    def set_errors(self, fields: Dict[str, str]) -> None:
        self.fields = dict(fields)

    def get(self, name: str) -> Optional[str]:
        return self.fields.get(name)

    def clear(self) -> None:
        self.fields = {}

    def __bool__(self) -> bool:
        return bool(self.fields)


class AuthForm:
    def __init__(self, client: AuthClient, session: SessionManager, bridge: ErrorBridge):
        self.client = client
        self.session = session
        self.bridge = bridge
        self.errors = FormErrors()
        self.submitting = False
        self.last_error: Optional[ErrorInfo] = None
        self._generation = 0
        self._mounted = True
        self._lock = threading.Lock()

    @property
    def mounted(self) -> bool:
        return self._mounted

    def dispose(self) -> None:
        """Unmount: any in-flight response will be ignored."""
        with self._lock:
            self._mounted = False
            self._generation += 1

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            self.submitting = True
            self.errors.clear()
            self.last_error = None
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return self._mounted and generation == self._generation

    def login(self, identifier: str, password: str) -> bool:
        return self._submit("login", identifier=identifier, password=password)

    def register(self, identifier: str, password: str, name: Optional[str] = None) -> bool:
        return self._submit("register", identifier=identifier, password=password, name=name)

    def _submit(self, action: str, **fields: Any) -> bool:
        generation = self._begin()
        try:
            call = self.client.login if action == "login" else self.client.register
            body = call(**fields)
        except Exception as e:
            if not self._is_current(generation):
                logger.debug("Discarding stale auth response", action=action)
                return False
            self.submitting = False
            self.last_error = self.bridge.handle(e, form=self.errors, redirect_on_auth=False)
            return False

        if not self._is_current(generation):
            logger.debug("Discarding stale auth response", action=action)
            return False
        self.submitting = False
        self.session.set_session(body["token"], body["user"])
        return True
