"""
Identity - resolve the operator behind a session token.
"""

from src.kernel.identity.jwt import SessionClaims, decode_session_token

__all__ = [
    "SessionClaims",
    "decode_session_token",
]
