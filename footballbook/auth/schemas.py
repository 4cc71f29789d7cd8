"""
Input schemas for register/login.

Each rule reports one human-readable message per field. Messages are raised
as PydanticCustomError so they reach the client verbatim, and the resulting
{field: message} map can be shown on a form without re-validating.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Tuple, Type

import email_validator
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from .namespaces import Namespace

PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
PASSWORD_STRENGTH_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

PHONE_MIN, PHONE_MAX = 10, 15
PASSWORD_MIN, PASSWORD_MAX = 6, 100
NAME_MIN, NAME_MAX = 2, 50

IDENTIFIER_ALIAS = "identifier"


def _fail(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


def _require_str(value: Any, label: str) -> str:
    if value is None or (isinstance(value, str) and value == ""):
        raise _fail("required", f"{label} is required")
    if not isinstance(value, str):
        raise _fail("string_type", f"{label} must be a string")
    return value


def check_phone(value: Any) -> str:
    phone = _require_str(value, "Phone number")
    if len(phone) < PHONE_MIN:
        raise _fail("too_short", f"Phone number must be at least {PHONE_MIN} digits")
    if len(phone) > PHONE_MAX:
        raise _fail("too_long", f"Phone number must not exceed {PHONE_MAX} digits")
    if not PHONE_RE.match(phone):
        raise _fail("pattern", "Invalid phone number format")
    return phone


def check_email(value: Any) -> str:
    email = _require_str(value, "Email").strip()
    if not email:
        raise _fail("required", "Email is required")
    try:
        email_validator.validate_email(email, check_deliverability=False)
    except email_validator.EmailNotValidError:
        raise _fail("email_format", "Invalid email format")
    return email.lower()


def check_password(value: Any, strong: bool) -> str:
    password = _require_str(value, "Password")
    if len(password) < PASSWORD_MIN:
        raise _fail("too_short", f"Password must be at least {PASSWORD_MIN} characters")
    if len(password) > PASSWORD_MAX:
        raise _fail("too_long", f"Password must not exceed {PASSWORD_MAX} characters")
    if strong and not PASSWORD_STRENGTH_RE.match(password):
        raise _fail(
            "password_strength",
            "Password must contain at least one lowercase letter, one uppercase letter, and one number",
        )
    return password


def check_name(value: Any, required: bool) -> Optional[str]:
    if value is None and not required:
        return None
    name = value.strip() if isinstance(value, str) and not required else _require_str(value, "Name").strip()
    if len(name) < NAME_MIN:
        raise _fail("too_short", f"Name must be at least {NAME_MIN} characters")
    if len(name) > NAME_MAX:
        raise _fail("too_long", f"Name must not exceed {NAME_MAX} characters")
    return name


def _name_required(info: ValidationInfo) -> bool:
    namespace = (info.context or {}).get("namespace")
    return bool(namespace and namespace.require_name)


def _field() -> Any:
    return Field(default=None, validate_default=True)


class UserLoginInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone: Any = _field()
    password: Any = _field()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        return check_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Any) -> str:
        return check_password(v, strong=False)


class UserRegisterInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone: Any = _field()
    password: Any = _field()
    name: Any = _field()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        return check_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Any) -> str:
        return check_password(v, strong=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        return check_name(v, required=_name_required(info))


class AdminLoginInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Any = _field()
    password: Any = _field()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Any) -> str:
        return check_password(v, strong=False)


class AdminRegisterInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Any = _field()
    password: Any = _field()
    name: Any = _field()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Any) -> str:
        return check_password(v, strong=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        return check_name(v, required=_name_required(info))


_SCHEMAS: Dict[Tuple[str, str], Type[BaseModel]] = {
    ("phone", "login"): UserLoginInput,
    ("phone", "register"): UserRegisterInput,
    ("email", "login"): AdminLoginInput,
    ("email", "register"): AdminRegisterInput,
}


def schema_for(namespace: Namespace, action: str) -> Type[BaseModel]:
    return _SCHEMAS[(namespace.identifier_field, action)]


def normalize_payload(payload: Any, namespace: Namespace) -> Dict[str, Any]:
    """Copy the request body, mapping the generic `identifier` key onto the namespace field."""
    if not isinstance(payload, Mapping):
        return {}
    data = dict(payload)
    if data.get(namespace.identifier_field) is None and IDENTIFIER_ALIAS in data:
        data[namespace.identifier_field] = data[IDENTIFIER_ALIAS]
    return data


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """First message per field, in schema order."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        errors.setdefault(str(loc[0]), err.get("msg", "Invalid value"))
    return errors


def validate_payload(
    namespace: Namespace, action: str, payload: Any
) -> Tuple[Optional[BaseModel], Dict[str, str]]:
    """Return (parsed input, {}) or (None, {field: message})."""
    schema = schema_for(namespace, action)
    try:
        data = schema.model_validate(normalize_payload(payload, namespace), context={"namespace": namespace})
        return data, {}
    except ValidationError as e:
        return None, field_errors(e)
