# src/dead_simple_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .controller import TaskViewController
from .ports import RemoteService


@dataclass
class AppState:
    # Settings object (real Settings or a test SimpleNamespace).
    settings: object

    remote: RemoteService
    controller: TaskViewController

    # "supabase" or "offline"; shown by /status.
    backend: str = "supabase"
