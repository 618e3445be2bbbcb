# src/dead_simple_tasks/remote/offline.py

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import secrets
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..core.models import Session, Task, sort_tasks
from ..core.ports import SessionListener
from ..core.results import Ok, RemoteError, RemoteResult

logger = logging.getLogger(__name__)


def _hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 100_000).hex()


class _OfflineSubscription:
    def __init__(self, listeners: list[SessionListener], listener: SessionListener) -> None:
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(self._listener)


class OfflineRemote:
    """
    In-process stand-in for the hosted backend, used for demos when Supabase is not configured.

    Behavior:
    - sign_up registers the account immediately (no email verification step),
    - rows are visible only to the signed-in owner (same as the remote access policy),
    - accounts, rows and the last session are saved to a JSON file if `store_path` is set.
    """

    def __init__(self, store_path: str | Path | None = None) -> None:
        self._path = Path(store_path) if store_path else None
        self._accounts: dict[str, dict[str, str]] = {}
        self._rows: list[Task] = []
        self._next_id = 1
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []

        self.auth = self
        self.tasks = _OfflineTaskTable(self)

        self._load()

    # ---- persistence ----

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to load offline store from %s", self._path)
            return
        if not isinstance(data, dict):
            return

        accounts = data.get("accounts")
        if isinstance(accounts, dict):
            self._accounts = {
                str(k): {"salt": str(v.get("salt", "")), "hash": str(v.get("hash", ""))}
                for k, v in accounts.items()
                if isinstance(v, dict)
            }

        rows = data.get("tasks")
        if isinstance(rows, list):
            for row in rows:
                try:
                    self._rows.append(Task.from_row(row))
                except (KeyError, TypeError, ValueError):
                    logger.warning("Skipping malformed offline row: %r", row)
        self._next_id = max([t.id for t in self._rows], default=0) + 1

        email = data.get("session_email")
        if isinstance(email, str) and email in self._accounts:
            self._session = Session(email=email, user_id=email)

        logger.info("Loaded offline store: %d accounts, %d tasks from %s", len(self._accounts), len(self._rows), self._path)

    def _save(self) -> None:
        if self._path is None:
            return
        data: dict[str, Any] = {
            "accounts": self._accounts,
            "tasks": [
                {"id": t.id, "title": t.title, "created_at": t.created_at, "email": t.email}
                for t in self._rows
            ],
            "session_email": self._session.email if self._session else None,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(Exception):
                # Best-effort: the file holds password hashes.
                os.chmod(self._path, 0o600)
        except Exception:
            logger.exception("Failed to save offline store to %s", self._path)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception:
                logger.exception("Session listener failed.")

    # ---- auth ----

    async def get_session(self) -> RemoteResult[Session | None]:
        return Ok(self._session)

    def on_session_change(self, listener: SessionListener) -> _OfflineSubscription:
        self._listeners.append(listener)
        return _OfflineSubscription(self._listeners, listener)

    async def sign_up(self, *, email: str, password: str) -> RemoteResult[None]:
        if email in self._accounts:
            return RemoteError("User already registered")
        if len(password) < 6:
            return RemoteError("Password should be at least 6 characters.")
        salt = secrets.token_hex(8)
        self._accounts[email] = {"salt": salt, "hash": _hash_password(password, salt)}
        self._save()
        logger.info("Offline account created: %s", email)
        return Ok(None)

    async def sign_in_with_password(self, *, email: str, password: str) -> RemoteResult[Session | None]:
        account = self._accounts.get(email)
        if account is None or _hash_password(password, account["salt"]) != account["hash"]:
            return RemoteError("Invalid login credentials")
        self._session = Session(email=email, user_id=email)
        self._save()
        self._emit()
        return Ok(self._session)

    async def sign_out(self, *, scope: str = "local") -> RemoteResult[None]:
        if self._session is None:
            return Ok(None)
        self._session = None
        self._save()
        self._emit()
        return Ok(None)

    # ---- rows (used by _OfflineTaskTable) ----

    def _visible(self) -> list[Task]:
        if self._session is None:
            return []
        return [t for t in self._rows if t.email == self._session.email]


class _OfflineTaskTable:
    def __init__(self, owner: OfflineRemote) -> None:
        self._owner = owner

    async def select_all(self) -> RemoteResult[list[Task]]:
        return Ok(sort_tasks(self._owner._visible()))

    async def insert(self, *, title: str, created_at: str, email: str) -> RemoteResult[None]:
        owner = self._owner
        if owner._session is None or owner._session.email != email:
            return RemoteError("new row violates row-level security policy for table \"tasks\"")
        owner._rows.append(Task(id=owner._next_id, title=title, created_at=created_at, email=email))
        owner._next_id += 1
        owner._save()
        return Ok(None)

    async def update_title(self, task_id: int, title: str) -> RemoteResult[None]:
        owner = self._owner
        visible = {t.id for t in owner._visible()}
        # Filters matching nothing succeed silently, like the remote.
        owner._rows = [
            replace(t, title=title) if t.id == task_id and t.id in visible else t
            for t in owner._rows
        ]
        owner._save()
        return Ok(None)

    async def delete(self, task_id: int) -> RemoteResult[None]:
        owner = self._owner
        visible = {t.id for t in owner._visible()}
        owner._rows = [t for t in owner._rows if not (t.id == task_id and t.id in visible)]
        owner._save()
        return Ok(None)
