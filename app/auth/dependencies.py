import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, HTTPException, status

from app.core import security

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity asserted by a verified access token."""

    id: UUID
    role: str = "learner"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_access_token_from_cookie(
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Extract access token from cookie"""
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authenticated",
        )
    return access_token


async def get_current_user(
    access_token: str = Depends(get_access_token_from_cookie),
) -> CurrentUser:
    """Resolve the caller from a verified access token"""
    payload = security.decode_token(access_token)

    if payload is None or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        logger.warning("Access token with malformed subject")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return CurrentUser(id=user_id, role=str(payload.get("role") or "learner"))


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
