"""Authentication for the API.

Clients send the backend access token they got from /auth/login as a bearer
token. When the backend's JWT secret is configured the token is verified
locally; otherwise the identity provider is asked who owns it.
"""

from typing import Any

from fastapi import Depends, HTTPException, Request, status  # type: ignore[import-untyped]
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer  # type: ignore[import-untyped]
from jose import JWTError, jwt  # type: ignore[import-untyped]

from epoch_timesheet.backend.auth import IdentityProvider
from epoch_timesheet.core.errors import AuthenticationError
from epoch_timesheet.core.models import Identity, Session

# Security scheme for dependency injection
security = HTTPBearer()

# Audience the backend puts in tokens of signed-in users
TOKEN_AUDIENCE = "authenticated"


def decode_access_token(token: str, secret_key: str) -> dict[str, Any]:
    """Verify a backend access token and return its claims.

    Args:
        token: Encoded JWT
        secret_key: The backend's JWT signing secret

    Returns:
        Decoded token payload

    Raises:
        JWTError: If the signature, audience or expiry check fails
    """
    payload: dict[str, Any] = jwt.decode(
        token, secret_key, algorithms=["HS256"], audience=TOKEN_AUDIENCE
    )
    return payload


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Session:
    """Resolve the session behind the request's bearer token.

    Args:
        request: Current request (for app state)
        credentials: HTTP authorization credentials (injected by FastAPI)

    Returns:
        Session carrying the caller's token and identity

    Raises:
        HTTPException: 401 if the token is invalid or expired

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_current_session) to protect endpoints.
    """
    token = credentials.credentials
    secret_key = request.app.state.config.get("backend.jwt_secret")

    if secret_key:
        try:
            claims = decode_access_token(token, secret_key)
        except JWTError as e:
            raise _unauthorized(f"Invalid authentication credentials: {str(e)}")
        if not claims.get("sub"):
            raise _unauthorized("Invalid authentication credentials: missing subject")
        identity = Identity(id=str(claims["sub"]), email=claims.get("email"))
        return Session(access_token=token, user=identity, expires_at=claims.get("exp"))

    provider = IdentityProvider(request.app.state.backend)
    try:
        identity = provider.get_user(token)
    except AuthenticationError as e:
        if e.status_code in (400, 401, 403):
            raise _unauthorized(f"Invalid authentication credentials: {str(e)}")
        raise
    return Session(access_token=token, user=identity)
