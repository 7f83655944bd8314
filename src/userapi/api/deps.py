"""FastAPI dependency injection for the userapi API.

Provides access to shared resources via app.state.
"""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from userapi.users.service import UserService


def get_db(request: Request) -> "Engine":
    """Get database engine from app state.

    Args:
        request: FastAPI request object.

    Returns:
        SQLAlchemy engine instance.
    """
    return request.app.state.db


def get_user_service(request: Request) -> "UserService":
    """Get the user service from app state."""
    return request.app.state.users
