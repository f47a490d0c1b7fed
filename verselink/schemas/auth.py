"""Authentication schemas."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class JWTClaims(BaseModel):
    """Claims read from a verified access token."""

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="authenticated", description="User role")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    aud: Optional[Union[str, List[str]]] = Field(None, description="Audience")


class CurrentUser(BaseModel):
    """Current authenticated user; ``id`` is the owner of notes and collections."""

    id: str = Field(..., description="User ID")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="user", description="User role")


__all__ = ["JWTClaims", "CurrentUser"]
