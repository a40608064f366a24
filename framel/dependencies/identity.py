from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel

from framel.models.user import User
from framel.utils.token import get_optional_user


class Identity(BaseModel):
    """Who owns the cart / order in this request."""

    key: str
    user_id: Optional[int] = None
    email: Optional[str] = None
    is_admin: bool = False

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


def user_key(user_id: int) -> str:
    return f"user:{user_id}"


def guest_key(token: str) -> str:
    return f"guest:{token}"


def get_identity(
    user: Optional[User] = Depends(get_optional_user),
    x_guest_token: Optional[str] = Header(default=None),
) -> Identity:
    if user is not None:
        return Identity(
            key=user_key(user.id),
            user_id=user.id,
            email=user.email,
            is_admin=user.is_admin,
        )

    if x_guest_token and x_guest_token.strip():
        return Identity(key=guest_key(x_guest_token.strip()))

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Login or provide a guest token",
    )
