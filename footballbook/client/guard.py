"""
Component-level route guard and auth-state watcher.

ViewGuard wraps a view: while the session is checked it shows a loading
message, then either renders the view once (authorized) or navigates away
(redirecting). Redirecting is terminal for a mounted guard.

With require_auth=False the logic flips: the guard protects login/register
views and sends visitors who already hold a session to the landing page.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..auth.route_table import login_redirect
from ..utils.logger import get_logger
from .events import EventBus, SessionEvent, Unsubscribe
from .navigation import Navigator
from .session import SessionManager

logger = get_logger(__name__)

CHECKING_MESSAGE = "Checking authentication..."
REDIRECTING_TO_LOGIN_MESSAGE = "Redirecting to login..."
REDIRECTING_MESSAGE = "Redirecting..."


class GuardState(str, Enum):
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    REDIRECTING = "redirecting"


class ViewGuard:
    def __init__(
        self,
        session: SessionManager,
        navigator: Navigator,
        render: Callable[[], Any],
        require_auth: bool = True,
        bus: Optional[EventBus] = None,
    ):
        self.session = session
        self.navigator = navigator
        self.render = render
        self.require_auth = require_auth
        self.bus = bus or session.bus
        self.state = GuardState.CHECKING
        self.render_count = 0
        self.path = "/"
        self._rendered: Any = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._mounted = False

    def mount(self, path: str) -> GuardState:
        """Start a fresh check for path; a previous mount's state is discarded."""
        self.unmount()
        self.path = path
        self.state = GuardState.CHECKING
        self._rendered = None
        self._mounted = True
        self._unsubscribe = self.bus.subscribe(self._on_event)
        self._check()
        return self.state

    def unmount(self) -> None:
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_event(self, event: SessionEvent) -> None:
        if event.namespace != self.session.namespace.name:
            return
        self._check()

    def _check(self) -> None:
        if not self._mounted or self.state is GuardState.REDIRECTING:
            return
        authenticated = self.session.is_authenticated()
        ns = self.session.namespace

        if self.require_auth and not authenticated:
            self._redirect(login_redirect(ns, self.path))
        elif not self.require_auth and authenticated:
            self._redirect(ns.landing_path)
        elif self.state is GuardState.CHECKING:
            self.state = GuardState.AUTHORIZED
            self._rendered = self.render()
            self.render_count += 1

    def _redirect(self, target: str) -> None:
        self.state = GuardState.REDIRECTING
        logger.debug("Guard redirecting", namespace=self.session.namespace.name, path=self.path, target=target)
        self.navigator.navigate(target)

    def view(self) -> Any:
        """What the wrapped slot shows right now."""
        if self.state is GuardState.AUTHORIZED:
            return self._rendered
        if self.state is GuardState.CHECKING:
            return CHECKING_MESSAGE
        return REDIRECTING_TO_LOGIN_MESSAGE if self.require_auth else REDIRECTING_MESSAGE


class AuthWatcher:
    """{is_authenticated, user, loading} for one namespace, refreshed on session events."""

    def __init__(self, session: SessionManager, bus: Optional[EventBus] = None):
        self.session = session
        self.bus = bus or session.bus
        self.is_authenticated = False
        self.user: Optional[Dict[str, Any]] = None
        self.loading = True
        self._unsubscribe: Optional[Unsubscribe] = self.bus.subscribe(self._on_event)
        self.refresh()

    def _on_event(self, event: SessionEvent) -> None:
        if event.namespace == self.session.namespace.name:
            self.refresh()

    def refresh(self) -> None:
        self.is_authenticated = self.session.is_authenticated()
        self.user = self.session.get_user() if self.is_authenticated else None
        self.loading = False

    def logout(self) -> None:
        self.session.logout()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
