# src/dead_simple_tasks/core/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class View(StrEnum):
    """Signed-out screens. Only meaningful while there is no session."""

    LANDING = "landing"
    LOGIN = "login"
    SIGNUP = "signup"

    @classmethod
    def parse(cls, raw: str | None) -> View | None:
        if not raw:
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


def utc_now_iso() -> str:
    """ISO-8601 timestamp with millisecond precision, same shape as JS `toISOString()`."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_timestamp(raw: str) -> datetime:
    """
    Parse a remote/client timestamp into an aware datetime.

    Postgres returns "+00:00" offsets and up to 6 fractional digits, the client
    writes "Z". Both must compare equal for the same instant.
    """
    s = (raw or "").strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    created_at: str
    email: str

    @property
    def is_temporary(self) -> bool:
        # Remote ids are positive serials; local placeholders are negative.
        return self.id < 0

    @property
    def created_dt(self) -> datetime:
        return parse_timestamp(self.created_at)

    def same_insert(self, other: Task) -> bool:
        """True if `other` is the row produced by inserting this task (ids aside)."""
        return (
            self.title == other.title
            and self.email == other.email
            and self.created_dt == other.created_dt
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Task:
        return cls(
            id=int(row["id"]),
            title=str(row.get("title") or ""),
            created_at=str(row.get("created_at") or ""),
            email=str(row.get("email") or ""),
        )


@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated identity. Opaque beyond the owner email."""

    email: str
    user_id: str | None = None
    access_token: str | None = None


def sort_tasks(tasks: list[Task]) -> list[Task]:
    # Stable: equal timestamps keep remote order.
    return sorted(tasks, key=lambda t: t.created_dt)
