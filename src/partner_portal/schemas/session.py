"""Schemas for the authenticated user session."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserSession(BaseModel):
    """The signed-in user as provided by the auth collaborator."""

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
