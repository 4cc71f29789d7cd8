"""
Token issuing and verification (HS256 JWT via PyJWT).

Claims:
  sub:        record id
  identifier: phone or email the token was issued for
  role:       "user" or "admin"
  iat/exp:    issued-at and expiry, seconds since epoch; exp = iat + ttl

Expiry is checked here against an injectable clock rather than by PyJWT,
so the boundary can be tested and both checks happen in one call.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Optional

import jwt
from pydantic import ValidationError

from ..core.config import Settings, check_signing_key
from ..utils.logger import get_logger
from .models import TokenClaims

logger = get_logger(__name__)

Clock = Callable[[], float]

# Signature and expiry are verified explicitly below.
_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
}


def _parse_claims(payload: object) -> Optional[TokenClaims]:
    if not isinstance(payload, dict):
        return None
    try:
        return TokenClaims(**payload)
    except ValidationError:
        return None


def decode_claims(token: Optional[str]) -> Optional[TokenClaims]:
    """
    Read claims WITHOUT checking the signature.

    Only for local pre-checks (is this token obviously expired?) before a
    network round-trip. Never use the result for access control.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, options={"verify_signature": False, **_DECODE_OPTIONS})
    except jwt.PyJWTError:
        return None
    return _parse_claims(payload)


def is_token_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    """True when the token is unreadable, has no expiry, or the expiry has passed."""
    claims = decode_claims(token)
    if claims is None:
        return True
    current = time.time() if now is None else now
    return current >= claims.exp


class TokenIssuer:
    """Signs and verifies bearer tokens with a process-wide key."""

    def __init__(self, signing_key: str, algorithm: str = "HS256", clock: Clock = time.time):
        if not signing_key:
            raise ValueError("signing_key is required")
        self._signing_key = signing_key
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = time.time) -> "TokenIssuer":
        check_signing_key(settings)
        return cls(settings.auth.signing_key, settings.auth.algorithm, clock=clock)

    def issue(self, subject: str, identifier: str, role: str, ttl: timedelta) -> str:
        """Sign a new token valid for exactly ttl from now."""
        iat = int(self._clock())
        payload = {
            "sub": subject,
            "identifier": identifier,
            "role": role,
            "iat": iat,
            "exp": iat + int(ttl.total_seconds()),
        }
        return jwt.encode(payload, self._signing_key, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """
        Return claims if the signature matches and the token is unexpired.

        Every failure returns None; callers cannot tell a forged token from an
        expired one. The reason is logged at debug level.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._signing_key,
                algorithms=[self.algorithm],
                options=_DECODE_OPTIONS,
            )
        except jwt.InvalidSignatureError:
            logger.debug("Token rejected", reason="bad_signature")
            return None
        except jwt.PyJWTError as e:
            logger.debug("Token rejected", reason="malformed", error=type(e).__name__)
            return None

        claims = _parse_claims(payload)
        if claims is None:
            logger.debug("Token rejected", reason="missing_claims")
            return None
        if self._clock() >= claims.exp:
            logger.debug("Token rejected", reason="expired", subject=claims.sub)
            return None
        return claims

    def decode(self, token: Optional[str]) -> Optional[TokenClaims]:
        """Unverified read; see decode_claims."""
        return decode_claims(token)
