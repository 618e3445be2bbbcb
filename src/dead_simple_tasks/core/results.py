# src/dead_simple_tasks/core/results.py

from __future__ import annotations

"""
Result types.

Two layers:
- RemoteResult: what a remote port returns (Ok or RemoteError). Adapters never raise
  for service failures, they translate the SDK error shape into RemoteError.
- Outcome: what a controller operation reports to its caller
  (Applied / ValidationSkipped / RemoteFailure).
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class RemoteError:
    message: str
    code: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> RemoteError:
        """Best-effort: SDK errors carry `.message` / `.code`, others only str()."""
        message = getattr(exc, "message", None)
        if not isinstance(message, str) or not message.strip():
            message = str(exc).strip() or exc.__class__.__name__
        code = getattr(exc, "code", None)
        return cls(message=message, code=str(code) if code is not None else None)


RemoteResult = Union[Ok[T], RemoteError]


@dataclass(frozen=True, slots=True)
class Applied:
    pass


@dataclass(frozen=True, slots=True)
class ValidationSkipped:
    """Empty input or a no-op edit. Not an error: nothing was sent."""

    reason: str


@dataclass(frozen=True, slots=True)
class RemoteFailure:
    message: str


Outcome = Union[Applied, ValidationSkipped, RemoteFailure]

APPLIED = Applied()
