# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from dead_simple_tasks.core.controller import TaskViewController
from dead_simple_tasks.core.models import Session
from dead_simple_tasks.core.state import AppState

from .fakes import EMAIL, FakeRemote, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="Dead Simple Tasks",
        log_level="INFO",
        supabase_url="",
        supabase_key="",
        supabase_configured=False,
        tasks_table="tasks",
        sign_out_scope="local",
        offline=True,
        data_dir=tmp_path,
        offline_store_path=tmp_path / "offline_store.json",
        session_store_path=tmp_path / "supabase_session.json",
    )


@pytest.fixture()
def remote() -> FakeRemote:
    """Remote with two existing rows for EMAIL (no session yet)."""
    return FakeRemote(
        [
            make_task(1, "write report", "2024-05-01T09:00:00.000Z"),
            make_task(2, "call mom", "2024-05-01T10:00:00.000Z"),
        ]
    )


@pytest.fixture()
def controller(remote: FakeRemote) -> TaskViewController:
    return TaskViewController(remote, sign_out_scope="local")


@pytest.fixture()
def signed_in(remote: FakeRemote) -> FakeRemote:
    """Same remote, with a persisted session for EMAIL (as if restored at startup)."""
    remote.auth.accounts[EMAIL] = "secret123"
    remote.auth.session = Session(email=EMAIL, user_id="uid-1")
    return remote


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemote, controller: TaskViewController) -> AppState:
    return AppState(settings=settings, remote=remote, controller=controller, backend="fake")
