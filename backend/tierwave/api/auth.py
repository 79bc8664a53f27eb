"""Bearer token authentication.

Tokens are issued by the account service; this service only decodes them.
The user id is read from the ``userId`` claim, falling back to ``sub``.
"""

from typing import Optional
from uuid import UUID

import jwt
from fastapi import Header, HTTPException

from tierwave.core.config import settings
from tierwave.core.logging import logger


def decode_user_id(token: str) -> UUID:
    """Decode *token* and return the user id it was issued for.

    Raises:
        jwt.InvalidTokenError: bad signature, expired, or no usable user id.
    """
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    raw = claims.get("userId") or claims.get("sub")
    if not raw:
        raise jwt.InvalidTokenError("Token carries no user id")
    try:
        return UUID(str(raw))
    except ValueError as e:
        raise jwt.InvalidTokenError(f"Malformed user id: {raw}") from e


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> UUID:
    """FastAPI dependency resolving the calling user from ``Authorization: Bearer``."""
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return decode_user_id(token)
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e
