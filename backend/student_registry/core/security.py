"""
Authenticated user context.

Authentication itself happens in the identity-aware proxy in front of the
service; it forwards the signed-in user's id in the X-User-Id header. Every
directory operation receives that id explicitly through a UserContext.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

USER_HEADER = "X-User-Id"


@dataclass(frozen=True)
class UserContext:
    """The user on whose behalf a directory operation runs."""

    user_id: str

    def __post_init__(self):
        if not self.user_id or not self.user_id.strip():
            raise ValueError("user_id must be a non-empty string")


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias=USER_HEADER),
) -> UserContext:
    """FastAPI dependency: refuse requests that carry no user id."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return UserContext(user_id=x_user_id.strip())
