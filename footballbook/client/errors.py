"""
Error / notification bridge.

classify() maps anything a client call can raise (or return) onto exactly one
ErrorKind; UNKNOWN catches whatever matches nothing else. ErrorBridge then
decides what the user sees:

- validation errors with field messages go to the form, no toast
- UNAUTHORIZED / FORBIDDEN clear the session, toast, and redirect to login
  after a short delay so the message can be read
- everything else is a toast and leaves the session alone
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, TypeVar

import requests

from ..utils.exceptions import ApiError, NetworkError
from ..utils.logger import get_logger
from .navigation import Navigator
from .notifications import Notifier
from .session import SessionManager

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_REDIRECT_DELAY_SECONDS = 2.0
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please login again."
DEFAULT_MESSAGE = "An unexpected error occurred"


class ErrorKind(str, Enum):
    NETWORK = "NETWORK_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


FRIENDLY_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Unable to connect to the server. Please check your internet connection and try again.",
    ErrorKind.UNAUTHORIZED: "Please login to access this feature.",
    ErrorKind.FORBIDDEN: "You don't have permission to perform this action.",
    ErrorKind.NOT_FOUND: "The requested information could not be found.",
    ErrorKind.RATE_LIMITED: "You're making requests too quickly. Please wait a moment and try again.",
    ErrorKind.SERVER: "Our servers are experiencing issues. Please try again in a few minutes.",
    ErrorKind.VALIDATION: "Please check your input and try again.",
}


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    message: str
    status: Optional[int] = None
    fields: Dict[str, str] = field(default_factory=dict)


def handle_validation_errors(details: Any) -> Dict[str, str]:
    """
    Turn a `details` list into {field: message}.

    Accepts {"field": ..., "message": ...} items and the path-style
    {"path": [field, ...], "message": ...}; the first message per field wins.
    """
    errors: Dict[str, str] = {}
    if not isinstance(details, (list, tuple)):
        return errors
    for detail in details:
        if not isinstance(detail, Mapping) or not detail.get("message"):
            continue
        name = detail.get("field")
        if name is None:
            path = detail.get("path") or detail.get("loc")
            if isinstance(path, (list, tuple)) and path:
                name = path[0]
        if name is not None:
            errors.setdefault(str(name), str(detail["message"]))
    return errors


def _from_status(status: int, error: Optional[str], details: Any) -> ErrorInfo:
    if status in (400, 422):
        return ErrorInfo(
            ErrorKind.VALIDATION,
            error or "Invalid request data",
            status,
            handle_validation_errors(details),
        )
    if status == 401:
        return ErrorInfo(ErrorKind.UNAUTHORIZED, error or "Authentication required", status)
    if status == 403:
        return ErrorInfo(ErrorKind.FORBIDDEN, error or "Access denied", status)
    if status == 404:
        return ErrorInfo(ErrorKind.NOT_FOUND, error or "Resource not found", status)
    if status == 429:
        return ErrorInfo(ErrorKind.RATE_LIMITED, "Too many requests. Please try again later.", status)
    if status >= 500:
        return ErrorInfo(ErrorKind.SERVER, "Server error. Please try again later.", status)
    return ErrorInfo(ErrorKind.UNKNOWN, error or "Request failed", status)


def _classify(error: Any) -> ErrorInfo:
    if isinstance(error, ErrorInfo):
        return error
    if isinstance(error, (NetworkError, requests.RequestException)):
        return ErrorInfo(ErrorKind.NETWORK, "Network error. Please check your connection.")
    if isinstance(error, ApiError):
        return _from_status(error.status, error.error, error.details)
    if isinstance(error, Mapping):
        status = error.get("status")
        message = error.get("error") or error.get("message")
        if isinstance(status, int) and not isinstance(status, bool):
            return _from_status(status, message, error.get("details"))
        return ErrorInfo(ErrorKind.UNKNOWN, str(message or "Unknown error"))
    if isinstance(error, str):
        return ErrorInfo(ErrorKind.UNKNOWN, error or DEFAULT_MESSAGE)
    if isinstance(error, BaseException):
        return ErrorInfo(ErrorKind.UNKNOWN, str(error) or DEFAULT_MESSAGE)
    return ErrorInfo(ErrorKind.UNKNOWN, DEFAULT_MESSAGE)


def classify(error: Any) -> ErrorInfo:
    """Total mapping from any caught failure to an ErrorInfo."""
    try:
        return _classify(error)
    except Exception:
        logger.exception("Error classification failed")
        return ErrorInfo(ErrorKind.UNKNOWN, DEFAULT_MESSAGE)


def user_friendly_message(info: ErrorInfo) -> str:
    return FRIENDLY_MESSAGES.get(info.kind, info.message)


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callable[[], None]) -> None: ...


class TimerScheduler:
    """Runs callbacks on daemon timer threads."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        timer = threading.Timer(delay, fn)
        timer.daemon = True
        timer.start()


class FieldErrorSink(Protocol):
    def set_errors(self, fields: Dict[str, str]) -> None: ...


class ErrorBridge:
    def __init__(
        self,
        notifier: Notifier,
        session: SessionManager,
        navigator: Navigator,
        scheduler: Optional[Scheduler] = None,
        redirect_delay: float = DEFAULT_REDIRECT_DELAY_SECONDS,
    ):
        self.notifier = notifier
        self.session = session
        self.navigator = navigator
        self.scheduler = scheduler or TimerScheduler()
        self.redirect_delay = redirect_delay

    def handle(
        self,
        error: Any,
        form: Optional[FieldErrorSink] = None,
        redirect_on_auth: bool = True,
        show_notification: bool = True,
    ) -> ErrorInfo:
        """
        Classify and surface a failure.

        redirect_on_auth=False is for login/register forms, where a 401
        means wrong credentials rather than an expired session.
        """
        info = classify(error)
        logger.warning(
            "Error handled",
            kind=info.kind.value,
            status=info.status,
            error_message=info.message,
            namespace=self.session.namespace.name,
        )

        if info.kind is ErrorKind.VALIDATION and info.fields and form is not None:
            form.set_errors(info.fields)
            return info

        if info.kind in (ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN) and redirect_on_auth:
            self._force_logout()
            return info

        if show_notification:
            self.notifier.error("Request Failed", info.message)
        return info

    def _force_logout(self) -> None:
        self.session.clear()
        self.notifier.error("Session expired", SESSION_EXPIRED_MESSAGE)
        login_path = self.session.namespace.login_path
        self.scheduler.call_later(self.redirect_delay, lambda: self.navigator.navigate(login_path))

    def with_error_handling(
        self, operation: Callable[[], T], **options: Any
    ) -> Tuple[bool, Optional[T], Optional[ErrorInfo]]:
        """Run operation; on failure handle it and return (False, None, info)."""
        try:
            return True, operation(), None
        except Exception as e:
            return False, None, self.handle(e, **options)
