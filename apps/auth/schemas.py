"""
Pydantic schemas for the Auth service.
"""
from typing import Any, Optional
from pydantic import BaseModel


class UserRecord(BaseModel):
    """
    Stored user, keyed by email.

    Fields are kept exactly as the client sent them: the password is
    stored verbatim and userId is never validated.
    """
    userId: Optional[Any] = None
    email: Any
    password: Any
    username: Any


class SignupResponse(BaseModel):
    userId: Optional[Any] = None
    username: Any
    message: str = "Account created successfully"


class LoginResponse(BaseModel):
    """Profile returned on login (password excluded)."""
    userId: Optional[Any] = None
    email: Any
    username: Any
