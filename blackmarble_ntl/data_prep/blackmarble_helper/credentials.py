"""
NASA Earthdata bearer token handling.

The token value is kept out of reprs and log messages.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .exceptions import CredentialError


def _jwt_expiry(token: str) -> Optional[datetime]:
    """Read the 'exp' claim of a JWT, or None if the token is not a JWT."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


@dataclass(frozen=True)
class BearerToken:
    """
    Bearer credential presented on every tile download.

    Args:
        value: Token string from NASA Earthdata
        expires_at: Optional expiry; read from the token itself when it is a JWT
    """

    value: str = field(repr=False)
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise CredentialError("Bearer token must be a non-empty string")
        if self.expires_at is None:
            object.__setattr__(self, "expires_at", _jwt_expiry(self.value.strip()))

    @classmethod
    def from_value(cls, bearer: Union["BearerToken", str]) -> "BearerToken":
        if isinstance(bearer, cls):
            return bearer
        if isinstance(bearer, str):
            return cls(bearer)
        raise CredentialError(f"Unsupported bearer credential type: {type(bearer).__name__}")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    def ensure_valid(self) -> None:
        """Raise CredentialError if the token has expired."""
        if self.is_expired():
            raise CredentialError(f"Bearer token expired at {self.expires_at.isoformat()}")

    def authorization_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.value.strip()}"}

    def __str__(self) -> str:
        return "BearerToken(****)"
