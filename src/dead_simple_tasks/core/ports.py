# src/dead_simple_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller depends on Protocols instead of a concrete backend client.
This keeps Supabase swappable (offline demo backend, in-memory fakes in tests).
"""

from collections.abc import Callable
from typing import Awaitable, Protocol

from .models import Session, Task
from .results import RemoteResult

SessionListener = Callable[[Session | None], None]


class AuthSubscription(Protocol):
    def unsubscribe(self) -> None: ...


class AuthService(Protocol):
    """Email/password auth. Session changes are pushed through `on_session_change`."""

    def get_session(self) -> Awaitable[RemoteResult[Session | None]]: ...

    def on_session_change(self, listener: SessionListener) -> AuthSubscription: ...

    def sign_up(self, *, email: str, password: str) -> Awaitable[RemoteResult[None]]: ...

    def sign_in_with_password(
            self,
            *,
            email: str,
            password: str,
    ) -> Awaitable[RemoteResult[Session | None]]: ...

    def sign_out(self, *, scope: str = "local") -> Awaitable[RemoteResult[None]]: ...


class TaskTable(Protocol):
    """
    Row operations on the per-user tasks table.

    Visibility is scoped to the signed-in user by the remote access policy,
    not by the client.
    """

    # select * order by created_at asc
    def select_all(self) -> Awaitable[RemoteResult[list[Task]]]: ...

    # id is assigned remotely
    def insert(
            self,
            *,
            title: str,
            created_at: str,
            email: str,
    ) -> Awaitable[RemoteResult[None]]: ...

    def update_title(self, task_id: int, title: str) -> Awaitable[RemoteResult[None]]: ...

    def delete(self, task_id: int) -> Awaitable[RemoteResult[None]]: ...


class RemoteService(Protocol):
    auth: AuthService
    tasks: TaskTable
