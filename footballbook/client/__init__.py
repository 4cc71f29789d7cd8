"""Client side: session persistence, guards, API client and error bridge."""

from .api import AuthClient
from .errors import ErrorBridge, ErrorInfo, ErrorKind, classify
from .events import EventBus, SessionEvent
from .forms import AuthForm, FormErrors
from .guard import AuthWatcher, GuardState, ViewGuard
from .navigation import HistoryNavigator
from .notifications import Notifier
from .session import SessionManager
from .storage import JsonFileStorage, MemoryStorage

__all__ = [
    "AuthClient",
    "AuthForm",
    "AuthWatcher",
    "ErrorBridge",
    "ErrorInfo",
    "ErrorKind",
    "EventBus",
    "FormErrors",
    "GuardState",
    "HistoryNavigator",
    "JsonFileStorage",
    "MemoryStorage",
    "Notifier",
    "SessionEvent",
    "SessionManager",
    "ViewGuard",
    "classify",
]
