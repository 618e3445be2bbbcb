# src/dead_simple_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time: without Supabase credentials the app runs offline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DST"

SIGN_OUT_SCOPES = ("local", "global", "others")

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Supabase ----
    supabase_url: str
    supabase_key: str
    tasks_table: str
    sign_out_scope: str

    # ---- Offline demo backend ----
    offline: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    offline_store_path: Path
    session_store_path: Path

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "Dead Simple Tasks")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        # Accept the plain SUPABASE_* names too (same values the web client is built with).
        supabase_url = (_first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default="") or "").strip()
        supabase_key = (
            _first_env(_k("SUPABASE_KEY"), "SUPABASE_KEY", "SUPABASE_ANON_KEY", default="") or ""
        ).strip()
        tasks_table = _env(_k("TASKS_TABLE"), "tasks").strip() or "tasks"

        sign_out_scope = _env(_k("SIGN_OUT_SCOPE"), "local").strip().lower()
        if sign_out_scope not in SIGN_OUT_SCOPES:
            sign_out_scope = "local"

        offline = _env_bool(_k("OFFLINE"), False)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dead_simple_tasks"))
        offline_store_path = _env_path(_k("OFFLINE_STORE_PATH"), data_dir / "offline_store.json")
        session_store_path = _env_path(_k("SESSION_STORE_PATH"), data_dir / "supabase_session.json")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            tasks_table=tasks_table,
            sign_out_scope=sign_out_scope,
            offline=offline,
            data_dir=data_dir,
            offline_store_path=offline_store_path,
            session_store_path=session_store_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
