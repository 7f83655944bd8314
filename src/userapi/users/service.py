"""User use cases with a cache-aside read path.

Reads check the cache first, fall back to the repository and populate the
cache. Updates and deletes invalidate the cached entry. A cache outage only
costs a database round trip; it never fails the request.
"""

from __future__ import annotations

from userapi.cache import Cache, CacheError
from userapi.logging import get_logger
from userapi.users.models import User
from userapi.users.repository import UserRepository

log = get_logger("users")

DEFAULT_TTL_SECONDS = 3600


class InvalidUserIdError(ValueError):
    """User ids must be positive integers."""


class EmailTakenError(Exception):
    """Another live user already has this email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"email already exists: {email}")
        self.email = email


def cache_key(user_id: int) -> str:
    return f"user:{user_id}"


class UserService:
    """Create, read, update and delete users.

    Attributes:
        repo: User repository.
        cache: Read-through cache for ``get_user``.
        ttl_seconds: Lifetime of cached entries.
    """

    def __init__(
        self,
        repo: UserRepository,
        cache: Cache,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.repo = repo
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def create_user(self, name: str, email: str) -> User:
        """Create a user.

        Raises:
            EmailTakenError: If the email belongs to a live user.
        """
        name = name.strip()
        email = email.strip().lower()
        if self.repo.get_by_email(email) is not None:
            raise EmailTakenError(email)

        user = self.repo.create(name, email)
        log.info("user_created", user_id=user.id)
        return user

    def get_user(self, user_id: int) -> User:
        """Get a user, serving from cache when possible.

        Raises:
            InvalidUserIdError: If the id is not positive.
            UserNotFoundError: If no live user has this id.
        """
        _check_id(user_id)
        key = cache_key(user_id)

        try:
            cached = self.cache.get_json(key)
        except CacheError as e:
            log.warning("user_cache_read_failed", user_id=user_id, error=str(e))
            cached = None

        if cached is not None:
            log.debug("user_cache_hit", user_id=user_id)
            return User.model_validate(cached)

        user = self.repo.get_by_id(user_id)

        try:
            self.cache.set_json(key, user.model_dump(mode="json"), self.ttl_seconds)
        except CacheError as e:
            log.warning("user_cache_write_failed", user_id=user_id, error=str(e))

        return user

    def update_user(self, user_id: int, name: str, email: str) -> User:
        """Replace a user's name and email.

        Raises:
            InvalidUserIdError: If the id is not positive.
            UserNotFoundError: If no live user has this id.
            EmailTakenError: If the new email belongs to another live user.
        """
        _check_id(user_id)
        name = name.strip()
        email = email.strip().lower()

        current = self.repo.get_by_id(user_id)
        if current.email != email:
            existing = self.repo.get_by_email(email)
            if existing is not None and existing.id != user_id:
                raise EmailTakenError(email)

        user = self.repo.update(user_id, name, email)
        self._invalidate(user_id)
        log.info("user_updated", user_id=user_id)
        return user

    def delete_user(self, user_id: int) -> None:
        """Soft-delete a user.

        Raises:
            InvalidUserIdError: If the id is not positive.
            UserNotFoundError: If no live user has this id.
        """
        _check_id(user_id)
        self.repo.delete(user_id)
        self._invalidate(user_id)
        log.info("user_deleted", user_id=user_id)

    def _invalidate(self, user_id: int) -> None:
        try:
            self.cache.delete(cache_key(user_id))
        except CacheError as e:
            log.warning("user_cache_invalidate_failed", user_id=user_id, error=str(e))


def _check_id(user_id: int) -> None:
    if user_id <= 0:
        raise InvalidUserIdError(f"invalid user ID: {user_id}")
