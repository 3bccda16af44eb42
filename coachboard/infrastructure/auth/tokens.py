"""
Access token verification.

The hosted auth service signs access tokens with the project's JWT
secret (HS256). We verify them locally rather than calling the service
on every request. The mock backend signs its tokens the same way, so
one verification path serves both.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from jose import JWTError, jwt

from ...core.errors import InvalidCredentials
from ...core.identity import Session

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def encode_access_token(claims: Dict[str, Any], secret: str) -> str:
    """Sign claims into an access token. Callers set exp/aud themselves."""
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str, audience: str = "authenticated") -> Session:
    """
    Verify a bearer token and turn its claims into a Session.

    Raises InvalidCredentials if the signature, audience or expiry
    doesn't check out.
    """
    if not token:
        raise InvalidCredentials("Missing access token")
    if not secret:
        raise InvalidCredentials("Token verification is not configured")

    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], audience=audience)
    except JWTError as e:
        logger.warning("Access token rejected", extra={"error": str(e)})
        raise InvalidCredentials("Invalid or expired access token") from e

    user_id = claims.get("sub")
    email = claims.get("email")
    if not user_id or not email:
        raise InvalidCredentials("Access token is missing subject or email")

    expires_at = None
    if claims.get("exp") is not None:
        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)

    # Hosted tokens carry session_id; fall back to jti, then subject+iat
    session_id = (
        claims.get("session_id")
        or claims.get("jti")
        or f"{user_id}:{claims.get('iat', '')}"
    )

    return Session(
        session_id=str(session_id),
        user_id=str(user_id),
        email=str(email),
        access_token=token,
        expires_at=expires_at,
    )
