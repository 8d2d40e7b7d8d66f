"""
In-memory user collection with write-through persistence.

The repository owns the authoritative list of users. Every mutation builds the
prospective collection, persists it through the store and only then swaps it
into memory, so a failed write never leaves memory and disk diverged.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping, Optional

from users_api.domain.users import (
    FieldError,
    User,
    build_user,
    collation_key,
    parse_age_threshold,
    patch_changes,
    validate_candidate,
    validate_patch,
)
from users_api.repositories.json_storage import JsonUserStore, StoreLoadError, StoreWriteError

logger = logging.getLogger(__name__)


class UserRepositoryError(Exception):
    """Base class for repository-level failures."""


class ValidationError(UserRepositoryError):
    def __init__(self, errors: list[FieldError]):
        super().__init__("Invalid user data")
        self.errors = errors


class UserNotFoundError(UserRepositoryError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class EmptyCollectionError(UserRepositoryError):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex


class UserRepository:
    """List/get/filter/sort users and apply write-through mutations."""

    def __init__(
        self,
        store: JsonUserStore,
        users: Optional[Iterable[User]] = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self._users: list[User] = list(users or [])
        self._id_factory = id_factory
        self._lock = threading.Lock()

    @classmethod
    def from_store(cls, store: JsonUserStore, *, on_load_error: str = "fail") -> "UserRepository":
        """Load the collection once; `on_load_error="empty"` starts empty instead of raising."""
        try:
            users = store.load()
        except StoreLoadError:
            if on_load_error != "empty":
                raise
            logger.exception("Could not load %s, starting with an empty collection", store.path)
            users = []
        logger.info("Loaded %d users from %s", len(users), store.path)
        return cls(store, users)

    # -------------------------- reads --------------------------
    def _snapshot(self) -> list[User]:
        with self._lock:
            return list(self._users)

    def list(self) -> list[User]:
        return self._snapshot()

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def get(self, user_id: str) -> User:
        key = str(user_id)
        for user in self._snapshot():
            if user.id == key:
                return user
        raise UserNotFoundError(key)

    def list_sorted(self) -> list[User]:
        users = self._snapshot()
        if not users:
            raise EmptyCollectionError("No users found")
        return sorted(users, key=lambda u: collation_key(u.name))

    def list_by_age_greater_than(self, threshold: Any) -> list[User]:
        limit = parse_age_threshold(threshold)
        if limit is None:
            return []
        return [u for u in self._snapshot() if u.age > limit]

    def list_by_email_domain(self, suffix: str) -> list[User]:
        suffix = suffix or ""
        return [u for u in self._snapshot() if u.email.endswith(suffix)]

    # -------------------------- writes --------------------------
    def _commit(self, users: list[User]) -> None:
        # caller holds self._lock
        try:
            self.store.save(users)
        except StoreWriteError:
            logger.error("Error writing users to %s; in-memory collection left unchanged", self.store.path)
            raise
        self._users = users

    def _unused_id(self, taken: set[str]) -> str:
        user_id = self._id_factory()
        while user_id in taken:
            user_id = self._id_factory()
        return user_id

    def create_many(self, candidates: Iterable[Mapping[str, Any]]) -> list[User]:
        candidates = list(candidates)
        if not candidates:
            return []
        errors = [err for index, raw in enumerate(candidates) for err in validate_candidate(raw, index)]
        if errors:
            raise ValidationError(errors)
        with self._lock:
            taken = {u.id for u in self._users}
            created = []
            for raw in candidates:
                user = build_user(self._unused_id(taken), raw)
                taken.add(user.id)
                created.append(user)
            self._commit(self._users + created)
        logger.info("Created users %s", ", ".join(u.id for u in created))
        return created

    def create(self, candidate: Mapping[str, Any]) -> User:
        return self.create_many([candidate])[0]

    def update(self, user_id: str, patch: Mapping[str, Any]) -> User:
        key = str(user_id)
        errors = validate_patch(patch)
        with self._lock:
            index = self._index_of(key)
            if errors:
                raise ValidationError(errors)
            changes = patch_changes(patch)
            if not changes:
                return self._users[index]
            updated = replace(self._users[index], **changes)
            users = list(self._users)
            users[index] = updated
            self._commit(users)
        logger.info("Updated user %s (%s)", key, ", ".join(sorted(changes)))
        return updated

    def delete(self, user_id: str) -> User:
        key = str(user_id)
        with self._lock:
            index = self._index_of(key)
            users = list(self._users)
            removed = users.pop(index)
            self._commit(users)
        logger.info("Deleted user %s", key)
        return removed

    def reload(self) -> list[User]:
        """Re-read the store and replace the in-memory collection."""
        with self._lock:
            users = self.store.load()
            self._users = users
        logger.info("Reloaded %d users from %s", len(users), self.store.path)
        return list(users)

    def _index_of(self, user_id: str) -> int:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index
        raise UserNotFoundError(user_id)
