"""Result and error-kind types returned by the query facade."""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Category of a failed operation."""
    NOT_FOUND = "NotFound"
    INVALID_INPUT = "InvalidInput"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    STORAGE_ERROR = "StorageError"


class ValidationReason(Enum):
    """Why an input or record failed validation."""
    INVALID_DATE = "InvalidDate"
    MISSING_FIELD = "MissingField"
    NO_VALID_FIELDS = "NoValidFields"
    INVALID_VALUE = "InvalidValue"


@dataclass
class Failure:
    """Structured reason for a failed operation."""
    kind: ErrorKind
    message: str
    reason: ValidationReason | None = None


@dataclass
class Result:
    """Outcome of a single-record operation: a value or a failure."""
    value: Any = None
    error: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "Result":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, reason: ValidationReason | None = None) -> "Result":
        return cls(error=Failure(kind=kind, message=message, reason=reason))
