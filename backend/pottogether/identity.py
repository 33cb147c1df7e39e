"""
PotTogether Backend: Request Identity
======================================

What:  Resolves the authenticated user id of a request.
How:   `Authorization: Bearer <jwt>`; the token is an HS256 JWT signed with
       settings.jwt_secret_key whose `sub` claim is the integer user id.
       Token issuance belongs to the account service; `create_access_token`
       exists for tooling and tests.
Who:   `get_current_user_id` is a FastAPI dependency used by every /api route.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from pottogether.config import settings
from pottogether.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes UnauthorizedError (401 envelope)
# instead of FastAPI's own 403 body
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    """Signs a token for user_id with an expiry claim."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    claims = {"sub": str(user_id), "exp": expire}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_user_id(token: str) -> int:
    """
    Raises:
        UnauthorizedError: bad signature, expired, or no integer `sub`
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.info("Rejected bearer token: %s", str(e))
        raise UnauthorizedError(message="Invalid or expired token")

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise UnauthorizedError(message="Token does not identify a user")


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    return decode_user_id(credentials.credentials)
