"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current viewer extraction from the Bearer token
- Optional viewer for endpoints open to anonymous readers
- Capability checks
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from chapterhub.auth.permissions import Capability, has_capability
from chapterhub.auth.schemas import Viewer
from chapterhub.auth.security import decode_access_token, viewer_claims
from chapterhub.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _viewer_from_token(token: str) -> Viewer:
    payload = decode_access_token(token)
    viewer = Viewer(**viewer_claims(payload))
    set_user_id(viewer.id)
    return viewer


async def get_current_viewer(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Viewer:
    """Get the authenticated viewer.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to continue",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _viewer_from_token(token)
    except (JWTError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_viewer_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Viewer | None:
    """Get the viewer if authenticated, None otherwise.

    Anonymous readers can list comments and reaction counts.
    """
    if not token:
        return None

    try:
        return _viewer_from_token(token)
    except (JWTError, ValueError):
        return None


def require_capability(capability: Capability):
    """Create dependency requiring a capability.

    Example:
        @router.post("/bans")
        async def ban(
            viewer: Annotated[Viewer, Depends(require_capability(Capability.BAN_USERS))]
        ):
            ...
    """

    async def capability_checker(
        viewer: Annotated[Viewer, Depends(get_current_viewer)],
    ) -> Viewer:
        if not has_capability(viewer.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return viewer

    return capability_checker


CurrentViewer = Annotated[Viewer, Depends(get_current_viewer)]

OptionalViewer = Annotated[Viewer | None, Depends(get_current_viewer_optional)]

ModeratorViewer = Annotated[
    Viewer, Depends(require_capability(Capability.MODERATE_COMMENTS))
]
