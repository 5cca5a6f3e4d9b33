"""Profile error taxonomy.

ValidationError   user-correctable input, surfaced immediately, nothing written.
PersistenceError  the key-value boundary refused a write; earlier writes stay.
ParseError        a stored payload could not be decoded; loaders fall back to
                  an empty default and never re-raise it.
"""

from __future__ import annotations


class ProfileError(Exception):
    """Base class for everything the profile layer raises."""


class ValidationError(ProfileError):
    def __init__(self, field: str, reason: str = "invalid", message: str | None = None):
        self.field = field
        self.reason = reason
        self.message = message or f"Invalid value for '{field}' ({reason})"
        super().__init__(self.message)

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason, "message": self.message}


class PersistenceError(ProfileError):
    hint = "Local storage may be full or unavailable. Free some space and try again."

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class QuotaExceededError(PersistenceError):
    hint = "Local storage is full. Remove the avatar or clear old data and try again."


class ParseError(ProfileError):
    def __init__(self, key: str, detail: str):
        self.key = key
        self.detail = detail
        super().__init__(f"Could not parse stored '{key}': {detail}")
