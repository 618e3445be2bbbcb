# src/dead_simple_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the remote backend (Supabase, or the offline demo backend),
- wires the remote into a TaskViewController and AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.controller import TaskViewController
from ..core.ports import RemoteService
from ..core.state import AppState
from ..remote.offline import OfflineRemote
from ..remote.supabase_remote import create_supabase_remote

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.offline_store_path.parent.mkdir(parents=True, exist_ok=True)


async def create_remote(settings) -> tuple[RemoteService, str]:
    if getattr(settings, "offline", False):
        logger.info("Offline mode forced (DST_OFFLINE).")
        return OfflineRemote(settings.offline_store_path), "offline"

    if not settings.supabase_configured:
        logger.info("Supabase is not configured (DST_SUPABASE_URL / DST_SUPABASE_KEY), using the offline backend.")
        return OfflineRemote(settings.offline_store_path), "offline"

    try:
        return await create_supabase_remote(settings), "supabase"
    except Exception as e:
        # Fallback for demos / local runs without external services.
        logger.warning("Supabase unavailable (%s), using the offline backend.", e)
        return OfflineRemote(settings.offline_store_path), "offline"


async def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    remote, backend = await create_remote(settings)
    controller = TaskViewController(
        remote,
        sign_out_scope=getattr(settings, "sign_out_scope", "local"),
    )
    return AppState(settings=settings, remote=remote, controller=controller, backend=backend)
