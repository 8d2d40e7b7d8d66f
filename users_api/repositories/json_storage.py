"""
JSON file persistence for the user collection.

The whole collection lives in one pretty-printed JSON array. Every save
rewrites the complete document; there is no append mode and no file locking.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
import json
import logging
import os
import shutil
import tempfile

from users_api.domain.users import User, user_from_dict

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for persistence failures."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class StoreLoadError(StoreError):
    """The backing file exists but could not be read or parsed."""


class StoreWriteError(StoreError):
    """The collection could not be written to the backing file."""


class JsonUserStore:
    """Reads and writes the entire user collection from/to a single file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[User]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreLoadError(f"Error reading users from {self.path}: {exc}", self.path) from exc
        if not isinstance(data, list):
            raise StoreLoadError(f"Expected a JSON array in {self.path}", self.path)
        users = []
        seen = set()
        for position, raw in enumerate(data):
            try:
                user = user_from_dict(raw)
            except ValueError as exc:
                raise StoreLoadError(f"Invalid entry #{position} in {self.path}: {exc}", self.path) from exc
            if user.id in seen:
                raise StoreLoadError(f"Duplicate id {user.id!r} in {self.path}", self.path)
            seen.add(user.id)
            users.append(user)
        return users

    def save(self, users: Iterable[User]) -> None:
        try:
            payload = json.dumps([u.to_dict() for u in users], ensure_ascii=False, indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # the target is only ever replaced by a fully written sibling file
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                if self.path.exists():
                    shutil.copymode(self.path, tmp_name)
                else:
                    os.chmod(tmp_name, 0o644)
                os.replace(tmp_name, self.path)
            except Exception:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StoreWriteError(f"Error writing users to {self.path}: {exc}", self.path) from exc
        logger.debug("Saved users to %s", self.path)
