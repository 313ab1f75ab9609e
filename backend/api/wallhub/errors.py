from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    CONFLICT = "Conflict"
    INTERNAL = "Internal"


class ContentError(Exception):
    """Base error for every core operation. Carries a kind + message."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind.value, "detail": self.message}


class InvalidArgument(ContentError):
    kind = ErrorKind.INVALID_ARGUMENT


class NotFound(ContentError):
    kind = ErrorKind.NOT_FOUND


class Forbidden(ContentError):
    kind = ErrorKind.FORBIDDEN


class Conflict(ContentError):
    kind = ErrorKind.CONFLICT


class Internal(ContentError):
    kind = ErrorKind.INTERNAL
