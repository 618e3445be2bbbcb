# src/dead_simple_tasks/cli/render.py

from __future__ import annotations

from ..core.controller import TaskViewController
from ..core.models import View
from ..core.results import Outcome, RemoteFailure, ValidationSkipped

TAGLINE = "Tasks without the noise."


def describe_outcome(outcome: Outcome, ok_text: str) -> str:
    if isinstance(outcome, RemoteFailure):
        return f"Error: {outcome.message}"
    if isinstance(outcome, ValidationSkipped):
        return f"Nothing to do ({outcome.reason})."
    return ok_text


def _render_signed_out(ctl: TaskViewController, app_name: str) -> list[str]:
    if ctl.view is View.LANDING:
        return [
            app_name,
            "A minimalist task manager for your focused work. No clutter, no distractions.",
            "",
            "  /login   - sign in",
            "  /signup  - create an account to start organizing your tasks",
        ]

    if ctl.view is View.SIGNUP:
        lines = [
            "Create an account",
            "Enter your details to start organizing your tasks.",
            "  /auth <email> <password>   (/login if you already have an account)",
        ]
        if ctl.signup_message:
            lines.append(f"  {ctl.signup_message}")
        return lines

    return [
        "Welcome back",
        "Enter your credentials to access your tasks.",
        "  /auth <email> <password>   (/signup if you don't have an account)",
    ]


def render_tasks(ctl: TaskViewController) -> list[str]:
    if ctl.loading and not ctl.tasks:
        return ["  Loading..."]
    if ctl.is_empty:
        return ["  No tasks yet. Type a task and press Enter."]

    lines: list[str] = []
    for i, task in enumerate(ctl.tasks, start=1):
        if ctl.editing_id == task.id:
            lines.append(f"  {i:>2}. [ ] {ctl.editing_title}_  (editing)")
            continue
        # Unsaved placeholders are marked until the remote confirms them.
        suffix = "  (saving)" if task.is_temporary else ""
        lines.append(f"  {i:>2}. [ ] {task.title}{suffix}")
    return lines


def render_screen(ctl: TaskViewController, app_name: str = "Dead Simple Tasks") -> str:
    if ctl.session is None:
        lines = _render_signed_out(ctl, app_name)
    else:
        lines = [f"{app_name} ({ctl.session.email})", TAGLINE, *render_tasks(ctl)]

    if ctl.last_error:
        lines.append(f"! {ctl.last_error}")
    return "\n".join(lines)
