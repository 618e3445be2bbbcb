# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from dead_simple_tasks.config import Settings


def test_settings_defaults(monkeypatch) -> None:
    for name in (
        "DST_SUPABASE_URL",
        "SUPABASE_URL",
        "DST_SUPABASE_KEY",
        "SUPABASE_KEY",
        "SUPABASE_ANON_KEY",
        "DST_DATA_DIR",
        "DST_OFFLINE_STORE_PATH",
        "DST_SESSION_STORE_PATH",
        "DST_SIGN_OUT_SCOPE",
        "DST_OFFLINE",
        "DST_TASKS_TABLE",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()

    assert s.supabase_configured is False
    assert s.tasks_table == "tasks"
    assert s.sign_out_scope == "local"
    assert s.offline is False
    assert s.offline_store_path == Path(".local/dead_simple_tasks") / "offline_store.json"
    assert s.session_store_path == Path(".local/dead_simple_tasks") / "supabase_session.json"


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DST_SUPABASE_URL", raising=False)
    monkeypatch.setenv("SUPABASE_URL", "https://xyz.supabase.co")
    monkeypatch.setenv("DST_SUPABASE_KEY", "anon-key")
    monkeypatch.setenv("DST_SIGN_OUT_SCOPE", "GLOBAL")
    monkeypatch.setenv("DST_OFFLINE", "yes")
    monkeypatch.setenv("DST_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DST_OFFLINE_STORE_PATH", raising=False)

    s = Settings.from_env()

    assert s.supabase_url == "https://xyz.supabase.co"
    assert s.supabase_key == "anon-key"
    assert s.supabase_configured
    assert s.sign_out_scope == "global"
    assert s.offline is True
    assert s.offline_store_path == tmp_path / "offline_store.json"


def test_unknown_sign_out_scope_falls_back_to_local(monkeypatch) -> None:
    monkeypatch.setenv("DST_SIGN_OUT_SCOPE", "everywhere")

    assert Settings.from_env().sign_out_scope == "local"
