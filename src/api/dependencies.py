"""FastAPI dependencies: store access and bearer-token users."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from src.api.store import SandboxStore, SandboxUser


def get_store(request: Request) -> SandboxStore:
    return request.app.state.store  # type: ignore[no-any-return]


def optional_user(
    store: Annotated[SandboxStore, Depends(get_store)],
    authorization: Annotated[str | None, Header()] = None,
) -> SandboxUser | None:
    """The caller if a bearer token was sent, else None.  A bad token is a 401."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    user = store.user_for_token(token.strip())
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def require_user(user: Annotated[SandboxUser | None, Depends(optional_user)]) -> SandboxUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def require_admin(user: Annotated[SandboxUser, Depends(require_user)]) -> SandboxUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


StoreDep = Annotated[SandboxStore, Depends(get_store)]
OptionalUser = Annotated[SandboxUser | None, Depends(optional_user)]
CurrentUser = Annotated[SandboxUser, Depends(require_user)]
AdminUser = Annotated[SandboxUser, Depends(require_admin)]
