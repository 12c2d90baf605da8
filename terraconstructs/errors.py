"""
Errors raised while constructs are defined or a stack is prepared.

All of them are synth-time configuration errors: there is no retry or
recovery model, the exception propagates straight to the IaC author.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from constructs import IConstruct


def _now() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class ConstructError(Exception):
    """Base class for errors raised from the construct tree."""

    def __init__(self, message: str, error_type: str, scope: Optional[IConstruct] = None) -> None:
        super().__init__(message)
        self.message = message
        self.time = _now()
        self.type = error_type
        self.level = "error"
        self.construct_path = scope.node.path if scope is not None else None

    @property
    def name(self) -> str:
        return "ValidationError" if self.type == "validation" else type(self).__name__

    def __str__(self) -> str:
        if self.construct_path is None:
            return self.message
        return f"{self.message}\n    at path [{self.construct_path}]"


class ValidationError(ConstructError):
    """A construct received an invalid configuration."""

    def __init__(self, message: str, scope: IConstruct) -> None:
        super().__init__(message, "validation", scope)


class UnscopedValidationError(ConstructError):
    """Validation error raised where no construct is available."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "validation")


class Errors:
    @staticmethod
    def is_construct_error(x: Any) -> bool:
        return isinstance(x, ConstructError)

    @staticmethod
    def is_validation_error(x: Any) -> bool:
        return isinstance(x, ConstructError) and x.type == "validation"
