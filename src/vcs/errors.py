"""Error types and the typed outcome used across the VCS core."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class VcsIOError(OSError):
    """Failure to run or talk to a VCS tool, or to access the file system."""


class DownloadError(Exception):
    """Terminal failure of a download.

    Carries the VCS type and the target (directory or URL) for diagnosis.
    """

    def __init__(self, message: str, vcs_type: Any = None, target: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.vcs_type = vcs_type
        self.target = target
        self.cause = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message} Cause: {self.cause}"
        return message


class FailureKind(Enum):
    """Why an outcome carries no value."""
    NOT_APPLICABLE = "not_applicable"
    FATAL = "fatal"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a failure kind with a reason.

    A FATAL outcome may carry the exception that caused it.
    """

    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    reason: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def not_applicable(cls, reason: str = "") -> "Outcome[T]":
        return cls(failure=FailureKind.NOT_APPLICABLE, reason=reason)

    @classmethod
    def fatal(cls, reason: str = "", error: Optional[BaseException] = None) -> "Outcome[T]":
        return cls(failure=FailureKind.FATAL, reason=reason, error=error)

    @property
    def is_success(self) -> bool:
        return self.failure is None

    @property
    def is_fatal(self) -> bool:
        return self.failure is FailureKind.FATAL


def attempt(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
    """Call fn and map a VcsIOError to a NOT_APPLICABLE outcome."""
    try:
        return Outcome.success(fn(*args, **kwargs))
    except VcsIOError as exc:
        return Outcome.not_applicable(str(exc))
