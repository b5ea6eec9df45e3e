"""Validation result models and the closed error-code taxonomy."""

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    UNEXPECTED_STATUS_CODE = "UNEXPECTED_STATUS_CODE"
    UNEXPECTED_BODY = "UNEXPECTED_BODY"
    REQUIRED = "REQUIRED"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    FORMAT_VIOLATION = "FORMAT_VIOLATION"
    RANGE_VIOLATION = "RANGE_VIOLATION"
    ENUM_VIOLATION = "ENUM_VIOLATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ValidationError(BaseModel):
    """One conformance problem found in a request or response."""

    model_config = ConfigDict(frozen=True)

    path: str  # locator such as requestBody.items[0].id or query.limit
    message: str
    error_code: ErrorCode
    location: str | None = None  # path / query / header / cookie / body
    actual_value: Any = None
    actual_type: str | None = None
    expected: str | None = None


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: list[ValidationError] = []

    @classmethod
    def from_errors(cls, errors: Iterable[ValidationError]) -> "ValidationResult":
        errors = list(errors)
        return cls(valid=not errors, errors=errors)

    @property
    def error_codes(self) -> list[ErrorCode]:
        return [e.error_code for e in self.errors]


def json_type(value: Any) -> str:
    """JSON type name of a Python value.

    Integral floats count as ``integer``; booleans are never integers.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "integer" if value.is_integer() else "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
