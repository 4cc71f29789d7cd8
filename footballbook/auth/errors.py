"""
Auth results.

The service never raises across its public boundary; every call returns
either AuthSuccess or AuthFailure. Check `result.ok` before touching the
payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union


class AuthErrorKind(str, Enum):
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal_error"


HTTP_STATUS: Dict[AuthErrorKind, int] = {
    AuthErrorKind.VALIDATION: 400,
    AuthErrorKind.CONFLICT: 409,
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.UNAUTHORIZED: 401,
    AuthErrorKind.FORBIDDEN: 403,
    AuthErrorKind.INTERNAL: 500,
}

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
VALIDATION_FAILED_MESSAGE = "Validation failed"


@dataclass(frozen=True)
class AuthError:
    kind: AuthErrorKind
    message: str
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    @property
    def details(self) -> List[Dict[str, str]]:
        return [{"field": name, "message": msg} for name, msg in self.fields.items()]


@dataclass(frozen=True)
class AuthSuccess:
    user: Dict[str, Any]
    token: str

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class AuthFailure:
    error: AuthError

    ok: ClassVar[bool] = False

    @property
    def kind(self) -> AuthErrorKind:
        return self.error.kind


AuthResult = Union[AuthSuccess, AuthFailure]


def failure(kind: AuthErrorKind, message: str, fields: Optional[Dict[str, str]] = None) -> AuthFailure:
    return AuthFailure(AuthError(kind=kind, message=message, fields=dict(fields or {})))
