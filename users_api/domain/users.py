"""Domain helpers for user records: validation, patches and ordering."""
from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    age: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    index: Optional[int] = None

    def to_dict(self) -> dict:
        data = {"field": self.field, "message": self.message}
        if self.index is not None:
            data["index"] = self.index
        return data


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_candidate(raw: Any, index: Optional[int] = None) -> list[FieldError]:
    """Return every problem found in a raw user payload (empty list when valid)."""
    if not isinstance(raw, Mapping):
        return [FieldError("*", "expected an object", index)]
    errors = []
    for field in ("name", "email"):
        if not _is_text(raw.get(field)):
            errors.append(FieldError(field, "must be a non-empty string", index))
    if not _is_positive_int(raw.get("age")):
        errors.append(FieldError("age", "must be a positive integer", index))
    return errors


def build_user(user_id: str, raw: Mapping[str, Any]) -> User:
    return User(id=user_id, name=raw["name"], email=raw["email"], age=raw["age"])


def user_from_dict(raw: Any) -> User:
    """Rebuild a stored record; raises ValueError when the shape is wrong."""
    if not isinstance(raw, Mapping):
        raise ValueError("user entry is not an object")
    user_id = raw.get("id")
    if not isinstance(user_id, str) or not user_id:
        raise ValueError("user entry has no string id")
    problems = validate_candidate(raw)
    if problems:
        fields = ", ".join(p.field for p in problems)
        raise ValueError(f"user {user_id} has invalid fields: {fields}")
    return build_user(user_id, raw)


def validate_patch(patch: Any) -> list[FieldError]:
    """
    Check a partial update.

    Missing, None or empty name/email mean "leave unchanged". An explicit age
    must be a positive integer: 0 is rejected rather than ignored.
    """
    if not isinstance(patch, Mapping):
        return [FieldError("*", "expected an object")]
    errors = []
    for field in ("name", "email"):
        value = patch.get(field)
        if value is None or value == "":
            continue
        if not _is_text(value):
            errors.append(FieldError(field, "must be a non-empty string"))
    age = patch.get("age")
    if age is not None and not _is_positive_int(age):
        errors.append(FieldError("age", "must be a positive integer"))
    return errors


def patch_changes(patch: Mapping[str, Any]) -> dict:
    """Fields of an already validated patch that actually overwrite a value."""
    changes = {}
    for field in ("name", "email"):
        value = patch.get(field)
        if value:
            changes[field] = value
    if patch.get("age") is not None:
        changes["age"] = patch["age"]
    return changes


def parse_age_threshold(value: Any) -> Optional[int]:
    """
    Parse an age threshold the lenient way: leading digits win ("30abc" -> 30).

    Returns None when nothing numeric can be read.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    match = _INT_PREFIX.match(value)
    if not match:
        return None
    return int(match.group(1))


def collation_key(name: str) -> tuple:
    """
    Sort key approximating locale-aware comparison.

    Primary order ignores accents and case, then accents break ties, then
    lowercase sorts before uppercase.
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), decomposed.casefold(), name.swapcase())
