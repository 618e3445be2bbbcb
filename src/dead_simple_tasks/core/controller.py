# src/dead_simple_tasks/core/controller.py

from __future__ import annotations

"""
Task view-state controller.

Owns the in-memory task list of the signed-in user and keeps it in sync with the
remote table:
- mutations are applied locally first (optimistic), then sent to the remote,
- failures roll the local change back and surface a message in `last_error`,
- reload() is the reconciliation point with the remote rows.

Every optimistic mutation registers a pending overlay. It is dropped on failure
(rollback), or after the remote confirmation once no reload that started before
it can still be applied. An added task's overlay also waits for a reload that
can contain the new row. reload() merges remote rows with the overlays, so a
reload that lands mid-mutation never shows an older value than the optimistic one.

Everything runs on one asyncio loop; there is no queue or lock between operations.
"""

import asyncio
import logging
import time
from collections.abc import Coroutine
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .models import Session, Task, View, sort_tasks, utc_now_iso
from .ports import AuthSubscription, RemoteService
from .results import (
    APPLIED,
    Outcome,
    RemoteError,
    RemoteFailure,
    RemoteResult,
    ValidationSkipped,
)

logger = logging.getLogger(__name__)

SIGNUP_MESSAGE = "Check your email to verify"


class PendingKind(str, Enum):
    ADD = "add"
    DELETE = "delete"
    RENAME = "rename"


@dataclass(slots=True)
class PendingMutation:
    kind: PendingKind
    task: Task  # ADD: the placeholder, DELETE: the removed task, RENAME: the edited task
    index: int = 0  # DELETE: position before removal
    cancelled: bool = False  # ADD: completed before any reload showed the real row
    confirmed: Task | None = None  # ADD: remote row matched by a reload
    deleting: bool = False  # ADD (cancelled): delete of the real row sent
    deleted: bool = False  # ADD (cancelled): delete of the real row confirmed
    # Last reload seq started before the remote confirmed the change.
    # Results of those reloads may predate the change, so the overlay still applies to them.
    settled_at: int | None = None


class TaskViewController:
    def __init__(self, remote: RemoteService, *, sign_out_scope: str = "local") -> None:
        self._remote = remote
        self._sign_out_scope = sign_out_scope

        self.session: Session | None = None
        self.view: View = View.LANDING
        self.tasks: list[Task] = []
        self.editing_id: int | None = None
        self.editing_title: str = ""
        self.signup_message: str | None = None
        self.last_error: str | None = None
        self.auth_busy = False

        self._subscription: AuthSubscription | None = None
        self._closed = False
        self._background: set[asyncio.Task[Any]] = set()

        self._pending: dict[int, PendingMutation] = {}
        self._revision = 0
        self._last_temp_id = 0
        self._reload_seq = 0
        self._applied_reload_seq = 0
        self._reloads_in_flight: set[int] = set()
        # Bumped whenever the signed-in user changes; late results from an older epoch are dropped.
        self._epoch = 0

    # ---- derived state ----

    @property
    def loading(self) -> bool:
        return bool(self._reloads_in_flight)

    @property
    def screen(self) -> str:
        return "tasks" if self.session is not None else self.view.value

    @property
    def is_empty(self) -> bool:
        return self.session is not None and not self.loading and not self.tasks

    def find(self, task_id: int) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    # ---- lifecycle ----

    async def initialize(self) -> Outcome:
        """Subscribe to session changes (once) and pick up the persisted session."""
        if self._closed:
            return ValidationSkipped("controller is closed")

        if self._subscription is None:
            self._subscription = self._remote.auth.on_session_change(self._on_session_change)

        res = await self._remote.auth.get_session()
        if self._closed:
            return ValidationSkipped("controller is closed")
        if isinstance(res, RemoteError):
            return self._fail("get_session", res)

        self._set_session(res.value)
        return APPLIED

    def close(self) -> None:
        """Release the session subscription. In-flight remote calls are left to finish."""
        self._closed = True
        sub, self._subscription = self._subscription, None
        if sub is None:
            return
        try:
            sub.unsubscribe()
        except Exception:
            logger.debug("Session unsubscribe failed.", exc_info=True)

    async def wait_idle(self) -> None:
        """Wait for background reloads (triggered by session changes) to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _on_session_change(self, session: Session | None) -> None:
        if self._closed:
            return
        logger.debug("Session change: %s", session.email if session else None)
        self._set_session(session)

    def _set_session(self, session: Session | None) -> None:
        previous = self.session
        self.session = session

        if session is None:
            if previous is not None:
                self._clear_user_state()
            return

        if previous is not None and previous.email == session.email:
            # Token refresh etc.
            return

        if previous is not None:
            self._clear_user_state()
        self._spawn(self.reload())

    def _clear_user_state(self) -> None:
        self._epoch += 1
        self.tasks = []
        self._pending.clear()
        self._clear_edit()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, background reload skipped.")
            return

        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background reload crashed.", exc_info=exc)

    # ---- tasks ----

    async def reload(self) -> Outcome:
        """Fetch the user's rows (ordered by created_at) and reconcile local state with them."""
        self.last_error = None
        if self.session is None:
            return ValidationSkipped("not signed in")

        self._reload_seq += 1
        seq = self._reload_seq
        epoch = self._epoch

        self._reloads_in_flight.add(seq)
        try:
            res = await self._remote.tasks.select_all()
        finally:
            self._reloads_in_flight.discard(seq)

        if self._is_stale(epoch):
            return self._detached("reload", res)

        outcome = self._apply_reload(seq, res)
        self._prune_settled()
        if outcome is APPLIED:
            await self._delete_cancelled(epoch)
        return outcome

    def _apply_reload(self, seq: int, res: RemoteResult[list[Task]]) -> Outcome:
        if isinstance(res, RemoteError):
            return self._fail("reload", res)

        if seq < self._applied_reload_seq:
            logger.debug("Dropping stale reload result seq=%d (applied=%d)", seq, self._applied_reload_seq)
            return APPLIED

        self._applied_reload_seq = seq
        self.tasks = self._merge(res.value, seq)
        logger.debug("Reloaded %d tasks (pending=%d)", len(self.tasks), len(self._pending))
        return APPLIED

    async def add(self, title: str) -> Outcome:
        text = (title or "").strip()
        if not text:
            return ValidationSkipped("empty title")
        session = self.session
        if session is None:
            return ValidationSkipped("not signed in")

        task = Task(
            id=self._next_temp_id(),
            title=text,
            created_at=utc_now_iso(),
            email=session.email,
        )
        pending = PendingMutation(kind=PendingKind.ADD, task=task)
        rev = self._track(pending)
        self.tasks = [*self.tasks, task]
        epoch = self._epoch

        res = await self._remote.tasks.insert(
            title=task.title,
            created_at=task.created_at,
            email=task.email,
        )
        if self._is_stale(epoch):
            return self._detached("add", res)

        if isinstance(res, RemoteError):
            self._pending.pop(rev, None)
            self.tasks = [t for t in self.tasks if t.id != task.id]
            return self._fail("add", res)

        # The remote assigned the real id; the placeholder stays until a reload
        # started after this point has been applied.
        pending.settled_at = self._reload_seq
        outcome = await self.reload()
        if self._is_stale(epoch):
            return APPLIED
        return outcome if isinstance(outcome, RemoteFailure) else APPLIED

    async def complete(self, task_id: int) -> Outcome:
        """Check a task off. Completing deletes it."""
        index = next((i for i, t in enumerate(self.tasks) if t.id == task_id), None)
        if index is None:
            return ValidationSkipped("unknown task")
        task = self.tasks[index]

        if self.editing_id == task_id:
            self._clear_edit()

        if task.is_temporary:
            placeholder = self._pending_add(task_id)
            if placeholder is None:
                return ValidationSkipped("task is not saved yet")
            # Hide it now; the real row is deleted by the first reload that shows it.
            placeholder.cancelled = True
            self.tasks = [t for t in self.tasks if t.id != task_id]
            if placeholder.settled_at is None:
                # Insert still in flight; add() reloads once it is confirmed.
                return APPLIED
            outcome = await self.reload()
            return outcome if isinstance(outcome, RemoteFailure) else APPLIED

        rev = self._track(PendingMutation(kind=PendingKind.DELETE, task=task, index=index))
        self.tasks = [t for t in self.tasks if t.id != task_id]
        epoch = self._epoch

        res = await self._remote.tasks.delete(task_id)
        self._settle(rev, res)
        if self._is_stale(epoch):
            return self._detached("complete", res)

        if isinstance(res, RemoteError):
            self._restore(task, index)
            return self._fail("complete", res)

        self.last_error = None
        return APPLIED

    async def rename(self, task_id: int, new_title: str) -> Outcome:
        text = (new_title or "").strip()
        current = self.find(task_id)

        if current is None:
            self._clear_edit()
            return ValidationSkipped("unknown task")
        if not text or text == current.title:
            self._clear_edit()
            return ValidationSkipped("title unchanged")
        if current.is_temporary:
            self._clear_edit()
            return ValidationSkipped("task is not saved yet")

        updated = replace(current, title=text)
        rev = self._track(PendingMutation(kind=PendingKind.RENAME, task=updated))
        self.tasks = [updated if t.id == task_id else t for t in self.tasks]
        self._clear_edit()
        epoch = self._epoch

        res = await self._remote.tasks.update_title(task_id, text)
        self._settle(rev, res)
        if self._is_stale(epoch):
            return self._detached("rename", res)

        if isinstance(res, RemoteError):
            # Only undo our own title: a later rename may already be showing.
            self.tasks = [
                current if t.id == task_id and t.title == text else t for t in self.tasks
            ]
            return self._fail("rename", res)

        self.last_error = None
        return APPLIED

    # ---- rename mode ----

    async def begin_edit(self, task_id: int) -> bool:
        """Enter rename mode. An open editor on another task is submitted first (blur)."""
        if self.find(task_id) is None:
            return False
        if self.editing_id == task_id:
            return True
        if self.editing_id is not None:
            await self.commit_edit()

        task = self.find(task_id)
        if task is None:
            return False
        self.editing_id = task.id
        self.editing_title = task.title
        return True

    def set_editing_title(self, text: str) -> None:
        if self.editing_id is not None:
            self.editing_title = text

    def cancel_edit(self) -> None:
        self._clear_edit()

    async def commit_edit(self) -> Outcome:
        """Enter or blur: submit the current editing title."""
        if self.editing_id is None:
            return ValidationSkipped("not editing")
        return await self.rename(self.editing_id, self.editing_title)

    def _clear_edit(self) -> None:
        self.editing_id = None
        self.editing_title = ""

    # ---- auth ----

    def show_view(self, view: View | str) -> None:
        self.view = View(view)
        self.signup_message = None
        self.last_error = None

    async def submit_auth(self, email: str, password: str) -> Outcome:
        if self.view is View.SIGNUP:
            return await self.sign_up(email, password)
        return await self.sign_in(email, password)

    async def sign_up(self, email: str, password: str) -> Outcome:
        email = (email or "").strip()
        if not email or not password:
            return ValidationSkipped("missing credentials")

        self.auth_busy = True
        try:
            res = await self._remote.auth.sign_up(email=email, password=password)
        finally:
            self.auth_busy = False

        if isinstance(res, RemoteError):
            return self._fail("sign_up", res)

        # No session until the address is verified.
        self.last_error = None
        self.signup_message = SIGNUP_MESSAGE
        return APPLIED

    async def sign_in(self, email: str, password: str) -> Outcome:
        self.signup_message = None
        email = (email or "").strip()
        if not email or not password:
            return ValidationSkipped("missing credentials")

        self.auth_busy = True
        try:
            res = await self._remote.auth.sign_in_with_password(email=email, password=password)
        finally:
            self.auth_busy = False

        if isinstance(res, RemoteError):
            return self._fail("sign_in", res)

        self.last_error = None
        if res.value is not None and not self._closed:
            self._set_session(res.value)
        return APPLIED

    async def sign_out(self) -> Outcome:
        """
        Clear the local session right away, then invalidate the token remotely.

        Sign-out errors are logged, not surfaced: the session subscription reconciles
        whatever the remote ends up with.
        """
        if self.session is not None:
            self.session = None
            self._clear_user_state()

        res = await self._remote.auth.sign_out(scope=self._sign_out_scope)
        if isinstance(res, RemoteError):
            logger.warning("sign_out failed: %s", res.message)
            return RemoteFailure(res.message)
        return APPLIED

    # ---- internals ----

    def _next_temp_id(self) -> int:
        candidate = -max(1, time.monotonic_ns() // 1000)
        if candidate >= self._last_temp_id:
            candidate = self._last_temp_id - 1
        self._last_temp_id = candidate
        return candidate

    def _track(self, pending: PendingMutation) -> int:
        self._revision += 1
        self._pending[self._revision] = pending
        return self._revision

    def _settle(self, rev: int, res: RemoteResult[Any]) -> None:
        if isinstance(res, RemoteError):
            self._pending.pop(rev, None)
            return
        pending = self._pending.get(rev)
        if pending is not None:
            pending.settled_at = self._reload_seq
            self._prune_settled()

    def _prune_settled(self) -> None:
        """Drop confirmed overlays that no pending or future reload result can contradict."""
        oldest = min(self._reloads_in_flight, default=None)
        self._pending = {
            rev: p
            for rev, p in self._pending.items()
            if p.settled_at is None or not self._overlay_done(p, p.settled_at, oldest)
        }

    def _overlay_done(self, p: PendingMutation, settled_at: int, oldest_in_flight: int | None) -> bool:
        seen = self._applied_reload_seq > settled_at
        if p.kind is PendingKind.ADD and not p.deleted:
            # The placeholder is only replaced by a reload that can contain the row.
            if p.cancelled and p.confirmed is not None:
                return False
            if seen and p.cancelled:
                logger.info("Completed task %r was not found after insert.", p.task.title)
            return seen
        # Older reloads still in flight would be applied without the overlay.
        return seen or oldest_in_flight is None or oldest_in_flight > settled_at

    def _pending_add(self, temp_id: int) -> PendingMutation | None:
        for p in self._pending.values():
            if p.kind is PendingKind.ADD and p.task.id == temp_id:
                return p
        return None

    def _merge(self, rows: list[Task], seq: int) -> list[Task]:
        """Remote rows with pending optimistic mutations laid over them, in revision order."""
        hidden: set[int] = set()
        titles: dict[int, str] = {}
        adds: list[PendingMutation] = []
        for p in self._pending.values():
            if p.kind is PendingKind.ADD:
                adds.append(p)
            elif p.settled_at is not None and p.settled_at < seq:
                # This reload started after the remote confirmed the change.
                continue
            elif p.kind is PendingKind.DELETE:
                hidden.add(p.task.id)
            else:
                titles[p.task.id] = p.task.title

        merged: list[Task] = []
        for row in rows:
            if row.id in hidden:
                continue
            owner = next(
                (
                    p
                    for p in adds
                    if (p.confirmed.id == row.id if p.confirmed else p.task.same_insert(row))
                ),
                None,
            )
            if owner is not None:
                owner.confirmed = row
                if owner.cancelled:
                    continue
            title = titles.get(row.id)
            merged.append(row if title is None else replace(row, title=title))

        for p in adds:
            if p.confirmed is not None or p.cancelled:
                continue
            if p.settled_at is None or p.settled_at >= seq:
                merged.append(p.task)

        return sort_tasks(merged)

    async def _delete_cancelled(self, epoch: int) -> None:
        """Delete the real rows of tasks completed before a reload showed them."""
        doomed = [
            (rev, p)
            for rev, p in self._pending.items()
            if p.kind is PendingKind.ADD and p.cancelled and p.confirmed is not None and not p.deleting
        ]
        for rev, p in doomed:
            p.deleting = True
            row = p.confirmed
            res = await self._remote.tasks.delete(row.id)
            if self._is_stale(epoch):
                self._detached("complete", res)
                return
            if isinstance(res, RemoteError):
                self._pending.pop(rev, None)
                if self.find(row.id) is None:
                    self.tasks = sort_tasks([*self.tasks, row])
                self._fail("complete", res)
                continue
            # From here on the overlay hides the row from reloads that predate the delete.
            p.deleted = True
            p.settled_at = self._reload_seq

        if doomed:
            self._prune_settled()

    def _restore(self, task: Task, index: int) -> None:
        if self.find(task.id) is not None:
            return
        tasks = list(self.tasks)
        tasks.insert(min(index, len(tasks)), task)
        self.tasks = tasks

    def _is_stale(self, epoch: int) -> bool:
        return self._closed or epoch != self._epoch

    def _detached(self, op: str, res: RemoteResult[Any]) -> Outcome:
        # The user changed (or the controller closed) while the call was in flight.
        if isinstance(res, RemoteError):
            logger.info("%s failed after session change: %s", op, res.message)
            return RemoteFailure(res.message)
        return APPLIED

    def _fail(self, op: str, err: RemoteError) -> RemoteFailure:
        logger.warning("%s failed: %s", op, err.message)
        self.last_error = err.message or "Something went wrong. Try again."
        return RemoteFailure(self.last_error)
