"""Access token validation.

Tokens are minted by the hosted auth provider; this service only verifies
them with the shared key and reads the viewer claims.
"""

from typing import Any

from jose import JWTError, jwt

from chapterhub.auth.permissions import UserRole
from chapterhub.config.settings import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates:
    - JWT signature
    - Expiration time
    - Audience, when configured
    - Presence of the ``sub`` claim

    Raises:
        JWTError: If token is invalid, expired, or lacks a subject
    """
    settings = get_settings()

    options = {"verify_aud": settings.auth_audience is not None}
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options=options,
    )

    if not payload.get("sub"):
        msg = "Token missing subject claim"
        raise JWTError(msg)

    return payload


def viewer_claims(payload: dict[str, Any]) -> dict[str, Any]:
    """Pull viewer fields out of a decoded token.

    The role and profile fields may live at the top level or inside the
    provider's ``user_metadata`` / ``app_metadata`` blocks.
    """
    settings = get_settings()
    user_meta = payload.get("user_metadata") or {}
    app_meta = payload.get("app_metadata") or {}

    role = payload.get("role_name") or app_meta.get("role") or user_meta.get("role")
    if role not in {r.value for r in UserRole}:
        role = settings.auth_default_role

    return {
        "id": payload["sub"],
        "role": role,
        "display_name": payload.get("name")
        or user_meta.get("display_name")
        or user_meta.get("username")
        or "",
        "avatar_url": payload.get("avatar_url") or user_meta.get("avatar_url"),
    }
