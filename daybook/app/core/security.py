from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from ..services.storage import StorageService


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


async def resolve_authenticated_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> int:
    """Resolve the caller from a bearer session token or reject with 401."""

    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    storage: StorageService = request.app.state.storage_service
    user = await storage.get_user_by_session(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.current_user_id = user.id
    return user.id
