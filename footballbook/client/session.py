"""
Client-side session manager.

Holds {token, user view} for one namespace in client-local storage. The
stored blob is the only source of truth: is_authenticated() re-reads it
and re-checks expiry on every call, and expired sessions are ignored
rather than deleted.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Optional

from ..auth.models import TokenClaims
from ..auth.namespaces import Namespace
from ..auth.tokens import decode_claims
from ..utils.logger import get_logger
from .events import SESSION_CLEARED, SESSION_LOGOUT, SESSION_SET, EventBus, SessionEvent
from .navigation import Navigator
from .storage import KeyValueStorage

logger = get_logger(__name__)


class SessionManager:
    def __init__(
        self,
        namespace: Namespace,
        storage: KeyValueStorage,
        bus: Optional[EventBus] = None,
        navigator: Optional[Navigator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.namespace = namespace
        self.storage = storage
        self.bus = bus or EventBus()
        self.navigator = navigator
        self._clock = clock

    def _publish(self, kind: str) -> None:
        self.bus.publish(SessionEvent(namespace=self.namespace.name, kind=kind))

    def set_session(self, token: str, user: Dict[str, Any]) -> None:
        """Persist token and user view in a single write."""
        self.storage.set_items(
            {
                self.namespace.token_key: token,
                self.namespace.user_key: json.dumps(user, default=str),
            }
        )
        self._publish(SESSION_SET)

    def get_token(self) -> Optional[str]:
        try:
            return self.storage.get_item(self.namespace.token_key) or None
        except Exception:
            logger.warning("Session storage unreadable", namespace=self.namespace.name)
            return None

    def get_user(self) -> Optional[Dict[str, Any]]:
        try:
            raw = self.storage.get_item(self.namespace.user_key)
        except Exception:
            logger.warning("Session storage unreadable", namespace=self.namespace.name)
            return None
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return user if isinstance(user, dict) else None

    def get_claims(self) -> Optional[TokenClaims]:
        """Unverified claims of the stored token (local checks only)."""
        return decode_claims(self.get_token())

    def is_authenticated(self) -> bool:
        """Token present, unexpired and issued for this namespace."""
        claims = self.get_claims()
        if claims is None:
            return False
        if claims.role != self.namespace.role:
            return False
        return self._clock() < claims.exp

    def clear(self) -> None:
        self.storage.remove_items([self.namespace.token_key, self.namespace.user_key])
        self._publish(SESSION_CLEARED)

    def logout(self) -> None:
        """Clear, tell other tabs, and go to this namespace's login page."""
        self.clear()
        self._publish(SESSION_LOGOUT)
        logger.info("Logged out", namespace=self.namespace.name)
        if self.navigator is not None:
            self.navigator.navigate(self.namespace.login_path)
