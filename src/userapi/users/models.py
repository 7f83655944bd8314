"""Pydantic models for user records and requests."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

NAME_PATTERN = re.compile(r"^[A-Za-z\s\-'.]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class User(BaseModel):
    """A stored user record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class UserRequest(BaseModel):
    """Body for creating or replacing a user.

    Names are trimmed; emails are trimmed and lower-cased.
    """

    name: str = Field(..., min_length=2, max_length=100, examples=["John Doe"])
    email: str = Field(..., max_length=255, examples=["john@example.com"])

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Allow only letters, spaces, hyphens, apostrophes and dots."""
        v = v.strip()
        if len(v) < 2:
            raise ValueError("must be at least 2 characters long")
        if not NAME_PATTERN.match(v):
            raise ValueError("must contain only letters, spaces, hyphens, and apostrophes")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Require a basic ``local@domain.tld`` address."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("must be a valid email address")
        return v


class UserResponse(BaseModel):
    """User as returned by the API."""

    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
