"""User records: models, persistence and use cases."""

from userapi.users.models import User, UserRequest, UserResponse
from userapi.users.repository import UserNotFoundError, UserRepository
from userapi.users.service import (
    EmailTakenError,
    InvalidUserIdError,
    UserService,
)

__all__ = [
    "EmailTakenError",
    "InvalidUserIdError",
    "User",
    "UserNotFoundError",
    "UserRepository",
    "UserRequest",
    "UserResponse",
    "UserService",
]
