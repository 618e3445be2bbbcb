# src/dead_simple_tasks/remote/supabase_remote.py

from __future__ import annotations

import contextlib
import inspect
import json
import logging
import os
from pathlib import Path
from typing import Any

from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncSupportedStorage

from ..core.models import Session, Task
from ..core.ports import AuthSubscription, SessionListener
from ..core.results import Ok, RemoteError, RemoteResult

logger = logging.getLogger(__name__)


def to_session(raw: Any) -> Session | None:
    """Convert an SDK session object into our Session (None if absent or without an email)."""
    if raw is None:
        return None
    user = getattr(raw, "user", None)
    email = getattr(user, "email", None) if user is not None else None
    if not email:
        return None
    user_id = getattr(user, "id", None)
    return Session(
        email=str(email),
        user_id=str(user_id) if user_id is not None else None,
        access_token=getattr(raw, "access_token", None),
    )


def _remote_error(op: str, exc: Exception) -> RemoteError:
    err = RemoteError.from_exception(exc)
    logger.warning("Supabase %s failed (%s): %s", op, exc.__class__.__name__, err.message)
    logger.debug("Supabase %s error details", op, exc_info=True)
    return err


class FileSessionStorage(AsyncSupportedStorage):
    """
    Auth storage kept in a JSON file, so a signed-in session survives restarts.

    The file holds refresh tokens and must never be committed (store under a gitignored dir).
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._items: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to load auth session from %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._items, ensure_ascii=False), "utf-8")
            os.replace(tmp, self.path)
            with contextlib.suppress(Exception):
                os.chmod(self.path, 0o600)
        except Exception:
            logger.exception("Failed to save auth session to %s", self.path)

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._save()

    async def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._save()


class _Subscription:
    def __init__(self, raw: Any) -> None:
        self._raw = raw

    def unsubscribe(self) -> None:
        # gotrue's Subscription exposes unsubscribe as a plain callable attribute.
        unsubscribe = getattr(self._raw, "unsubscribe", None)
        if callable(unsubscribe):
            unsubscribe()


class SupabaseAuth:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def get_session(self) -> RemoteResult[Session | None]:
        try:
            raw = await self._client.auth.get_session()
        except Exception as e:
            return _remote_error("get_session", e)
        return Ok(to_session(raw))

    def on_session_change(self, listener: SessionListener) -> AuthSubscription:
        def _callback(event: Any, raw_session: Any) -> None:
            logger.debug("Auth event: %s", event)
            listener(to_session(raw_session))

        raw = self._client.auth.on_auth_state_change(_callback)
        if inspect.isawaitable(raw):
            # Never awaited in current SDKs; keep the contract synchronous.
            raise TypeError("on_auth_state_change must return a subscription synchronously")
        return _Subscription(raw)

    async def sign_up(self, *, email: str, password: str) -> RemoteResult[None]:
        try:
            await self._client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            return _remote_error("sign_up", e)
        return Ok(None)

    async def sign_in_with_password(self, *, email: str, password: str) -> RemoteResult[Session | None]:
        try:
            resp = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            return _remote_error("sign_in_with_password", e)
        return Ok(to_session(getattr(resp, "session", None)))

    async def sign_out(self, *, scope: str = "local") -> RemoteResult[None]:
        try:
            await self._client.auth.sign_out({"scope": scope})
        except Exception as e:
            return _remote_error("sign_out", e)
        return Ok(None)


class SupabaseTaskTable:
    def __init__(self, client: AsyncClient, table: str = "tasks") -> None:
        self._client = client
        self._table = table

    async def select_all(self) -> RemoteResult[list[Task]]:
        try:
            resp = await (
                self._client.table(self._table)
                .select("*")
                .order("created_at", desc=False)
                .execute()
            )
        except Exception as e:
            return _remote_error("select", e)

        rows = getattr(resp, "data", None) or []
        tasks: list[Task] = []
        for row in rows:
            try:
                tasks.append(Task.from_row(row))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed task row: %r", row)
        return Ok(tasks)

    async def insert(self, *, title: str, created_at: str, email: str) -> RemoteResult[None]:
        try:
            await (
                self._client.table(self._table)
                .insert({"title": title, "created_at": created_at, "email": email})
                .execute()
            )
        except Exception as e:
            return _remote_error("insert", e)
        return Ok(None)

    async def update_title(self, task_id: int, title: str) -> RemoteResult[None]:
        try:
            await (
                self._client.table(self._table)
                .update({"title": title})
                .eq("id", task_id)
                .execute()
            )
        except Exception as e:
            return _remote_error("update", e)
        return Ok(None)

    async def delete(self, task_id: int) -> RemoteResult[None]:
        try:
            await self._client.table(self._table).delete().eq("id", task_id).execute()
        except Exception as e:
            return _remote_error("delete", e)
        return Ok(None)


class SupabaseRemote:
    """RemoteService over one supabase AsyncClient (auth + tasks table)."""

    def __init__(self, client: AsyncClient, *, table: str = "tasks") -> None:
        self.client = client
        self.auth = SupabaseAuth(client)
        self.tasks = SupabaseTaskTable(client, table)


async def create_supabase_remote(settings) -> SupabaseRemote:
    """
    Build the Supabase-backed remote from settings.

    The auth session is stored in `settings.session_store_path`; a restored session
    is picked up by TaskViewController.initialize() via get_session().
    """
    url = (getattr(settings, "supabase_url", "") or "").strip()
    key = (getattr(settings, "supabase_key", "") or "").strip()
    table = getattr(settings, "tasks_table", "tasks") or "tasks"

    if not url or not key:
        raise RuntimeError("Supabase is not configured. Set DST_SUPABASE_URL and DST_SUPABASE_KEY in your .env.")

    storage = FileSessionStorage(settings.session_store_path)
    client = await acreate_client(url, key, options=AsyncClientOptions(storage=storage))
    logger.info("Supabase client ready (url=%s table=%s session=%s)", url, table, storage.path)
    return SupabaseRemote(client, table=table)
