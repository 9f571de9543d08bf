"""
Identity Token Verification

Key-management routes act on behalf of an end user, identified by a bearer
JWT from the external identity provider. This module checks that token and
turns its `sub` claim into the owner id that API keys are filed under.

- Signed with `settings.jwt_identity_secret` using `settings.JWT_ALGO`.
- `iss`, `aud`, `exp` and `sub` must all be present and valid.
"""

from __future__ import annotations

from typing import Tuple, Type

import jwt

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..config import settings
from .models import UserContext


security = HTTPBearer(auto_error=False)

REQUIRED_CLAIMS = ["iss", "aud", "exp", "sub"]

# Checked in order; the generic InvalidTokenError must stay last.
_TOKEN_FAILURES: Tuple[Tuple[Type[jwt.InvalidTokenError], str], ...] = (
    (jwt.ExpiredSignatureError, "Token has expired."),
    (jwt.InvalidAudienceError, "Invalid token audience."),
    (jwt.InvalidIssuerError, "Invalid token issuer."),
    (jwt.InvalidTokenError, "Invalid or malformed token."),
)


class IdentityConfigError(RuntimeError):
    """Identity verification is not configured on this server."""


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_identity_token(token: str) -> dict:
    """Validate `token` and return its claims; raises PyJWT errors on failure."""
    secret = settings.jwt_identity_secret.get_secret_value()
    if not secret or not settings.JWT_ALGO:
        raise IdentityConfigError("jwt_identity_secret and JWT_ALGO must be set.")

    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGO],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": REQUIRED_CLAIMS},
    )


def verify_identity_token(
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserContext:
    """
    FastAPI dependency returning the calling user.

    Missing, expired or otherwise invalid tokens are answered with 401; an
    unconfigured secret is a 500 since no token could ever pass.
    """
    if creds is None or not creds.credentials:
        raise _unauthorized("Not authenticated.")

    try:
        claims = decode_identity_token(creds.credentials)
    except IdentityConfigError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT verification configuration error.",
        )
    except jwt.InvalidTokenError as exc:
        detail = next(msg for kind, msg in _TOKEN_FAILURES if isinstance(exc, kind))
        raise _unauthorized(detail) from exc

    owner_id = claims.get("sub")
    if not isinstance(owner_id, str) or not owner_id:
        raise _unauthorized("Token missing 'sub' claim.")

    return UserContext(owner_id=owner_id, email=claims.get("email"))
