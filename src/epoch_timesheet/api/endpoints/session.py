"""Session endpoints: sign in, refresh, sign out, and who am I.

These endpoints proxy the backend's identity provider so a browser front end
only ever talks to this API.
"""

from fastapi import APIRouter, Depends, status  # type: ignore[import-untyped]

from epoch_timesheet.api.auth import get_current_session
from epoch_timesheet.api.dependencies import get_identity_provider
from epoch_timesheet.api.models import LoginRequest, RefreshRequest, TokenResponse, UserResponse
from epoch_timesheet.backend.auth import IdentityProvider
from epoch_timesheet.core.models import Session

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> TokenResponse:
    """Sign in with email and password.

    Example:
        >>> POST /api/v1/auth/login
        {
            "email": "ana@example.com",
            "password": "..."
        }
    """
    session = provider.password_grant(request.email, request.password)
    return TokenResponse.from_session(session)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    request: RefreshRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> TokenResponse:
    """Exchange a refresh token for a new access token."""
    session = provider.refresh_grant(request.refresh_token)
    return TokenResponse.from_session(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    session: Session = Depends(get_current_session),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> None:
    """Revoke the caller's access token."""
    provider.logout(session.access_token)


@router.get("/me", response_model=UserResponse)
def me(session: Session = Depends(get_current_session)) -> UserResponse:
    """Get the identity behind the bearer token."""
    return UserResponse(id=session.user.id, email=session.user.email)
