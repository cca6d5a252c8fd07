"""
Session token handling for direct SQL access.

Supabase signs session JWTs with the project's JWT secret; the `sub` claim
is the auth user id, which is also the profile id.
"""

from datetime import datetime, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from src.kernel.errors import PermissionDenied


class SessionClaims(BaseModel):
    """Claims read from a Supabase session token."""

    sub: str
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[datetime] = None


def decode_session_token(token: str, secret: str, algorithm: str = "HS256") -> SessionClaims:
    """
    Verify and decode a session token.

    Raises:
        PermissionDenied: signature, expiry or subject is invalid
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            # Supabase tokens carry aud="authenticated"; the audience is not checked here
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise PermissionDenied(f"Invalid session token: {exc}") from exc

    if not payload.get("sub"):
        raise PermissionDenied("Session token has no subject")

    exp = payload.get("exp")
    return SessionClaims(
        sub=str(payload["sub"]),
        email=payload.get("email"),
        role=payload.get("role"),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
    )
