"""User persistence over the ``users`` table.

Deleted users keep their row with ``deleted_at`` set and are invisible to
every query here.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.engine import Engine

from userapi.database import users, utcnow
from userapi.users.models import User


class UserNotFoundError(Exception):
    """No live user exists with the requested id."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"user not found: {user_id}")
        self.user_id = user_id


class UserRepository:
    """CRUD queries for users.

    Attributes:
        engine: SQLAlchemy engine.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, name: str, email: str) -> User:
        now = utcnow()
        with self.engine.begin() as conn:
            result = conn.execute(
                users.insert().values(name=name, email=email, created_at=now, updated_at=now)
            )
            user_id = result.inserted_primary_key[0]
        return User(id=user_id, name=name, email=email, created_at=now, updated_at=now)

    def get_by_id(self, user_id: int) -> User:
        """Get a live user.

        Raises:
            UserNotFoundError: If no live user has this id.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                select(users).where(users.c.id == user_id, users.c.deleted_at.is_(None))
            ).first()
        if row is None:
            raise UserNotFoundError(user_id)
        return User.model_validate(dict(row._mapping))

    def get_by_email(self, email: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(users).where(users.c.email == email, users.c.deleted_at.is_(None))
            ).first()
        return User.model_validate(dict(row._mapping)) if row else None

    def update(self, user_id: int, name: str, email: str) -> User:
        """Replace a live user's name and email.

        Raises:
            UserNotFoundError: If no live user has this id.
        """
        now = utcnow()
        with self.engine.begin() as conn:
            result = conn.execute(
                update(users)
                .where(users.c.id == user_id, users.c.deleted_at.is_(None))
                .values(name=name, email=email, updated_at=now)
            )
            if result.rowcount == 0:
                raise UserNotFoundError(user_id)
        return self.get_by_id(user_id)

    def delete(self, user_id: int) -> None:
        """Soft-delete a live user.

        Raises:
            UserNotFoundError: If no live user has this id.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                update(users)
                .where(users.c.id == user_id, users.c.deleted_at.is_(None))
                .values(deleted_at=utcnow())
            )
            if result.rowcount == 0:
                raise UserNotFoundError(user_id)
