# src/dead_simple_tasks/cli/commands.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Callable

from ..core.models import Task, View
from ..core.state import AppState
from .render import describe_outcome, render_screen

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Any other line adds a task (or, while editing, sets the new title).")
        return "\n".join(lines)


registry = CommandRegistry()


def _task_at(state: AppState, raw: str) -> Task | None:
    """Resolve a 1-based list position as shown by /list."""
    try:
        pos = int(raw)
    except ValueError:
        return None
    tasks = state.controller.tasks
    if pos < 1 or pos > len(tasks):
        return None
    return tasks[pos - 1]


def _app_name(state: AppState) -> str:
    return str(getattr(state.settings, "app_name", "Dead Simple Tasks"))


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ctl = state.controller
    user = ctl.session.email if ctl.session else "(signed out)"
    return (
        "Status:\n"
        f"  Backend: {state.backend}\n"
        f"  User: {user}\n"
        f"  Tasks: {len(ctl.tasks)}"
    )


async def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return render_screen(state.controller, _app_name(state))


async def cmd_view(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /landing, /login, /signup are registered separately; /view <name> is the generic form.
    """
    view = View.parse(args[0] if args else None)
    if view is None:
        return "Usage: /view landing | login | signup"
    if state.controller.session is not None:
        return "Already signed in. Use /logout first."
    state.controller.show_view(view)
    return render_screen(state.controller, _app_name(state))


def _show(view: View) -> CommandHandler:
    async def handler(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
        return await cmd_view(state, [view.value], emit)

    return handler


async def cmd_auth(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /auth <email> <password>  -> submit the login or signup form, depending on the current view
    """
    ctl = state.controller
    if ctl.session is not None:
        return "Already signed in."
    if len(args) != 2:
        return "Usage: /auth <email> <password>"
    if ctl.view is View.LANDING:
        ctl.show_view(View.LOGIN)

    if emit:
        with contextlib.suppress(Exception):
            emit("Signing up..." if ctl.view is View.SIGNUP else "Signing in...")

    outcome = await ctl.submit_auth(args[0], args[1])
    # The session subscription may have started a reload.
    await ctl.wait_idle()

    if ctl.session is not None:
        return render_screen(ctl, _app_name(state))
    if ctl.signup_message:
        return ctl.signup_message
    return describe_outcome(outcome, "Done.")


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ctl = state.controller
    if ctl.session is None:
        return "Sign in first (/login)."
    outcome = await ctl.add(" ".join(args))
    return describe_outcome(outcome, render_screen(ctl, _app_name(state)))


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /done <n>  -> check off (delete) the n-th task
    """
    ctl = state.controller
    if ctl.session is None:
        return "Sign in first (/login)."
    task = _task_at(state, args[0]) if args else None
    if task is None:
        return "Usage: /done <n> (see /list for numbers)"
    outcome = await ctl.complete(task.id)
    return describe_outcome(outcome, render_screen(ctl, _app_name(state)))


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <n>          -> enter rename mode; the next plain line is the new title
    /edit <n> <title>  -> rename right away
    """
    ctl = state.controller
    if ctl.session is None:
        return "Sign in first (/login)."
    task = _task_at(state, args[0]) if args else None
    if task is None:
        return "Usage: /edit <n> [new title]"

    # Switching rows blurs (submits) the previous editor.
    if not await ctl.begin_edit(task.id):
        return "Usage: /edit <n> [new title]"
    if len(args) == 1:
        return f"Editing #{args[0]}: {task.title!r}. Type the new title, /cancel to keep it."

    ctl.set_editing_title(" ".join(args[1:]))
    outcome = await ctl.commit_edit()
    return describe_outcome(outcome, render_screen(ctl, _app_name(state)))


async def cmd_cancel(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.controller.cancel_edit()
    return render_screen(state.controller, _app_name(state))


async def cmd_reload(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ctl = state.controller
    outcome = await ctl.reload()
    return describe_outcome(outcome, render_screen(ctl, _app_name(state)))


async def cmd_logout(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ctl = state.controller
    if ctl.session is None:
        return "Not signed in."
    # Failures are logged by the controller; the local session is gone either way.
    await ctl.sign_out()
    return "Signed out.\n" + render_screen(ctl, _app_name(state))


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend and signed-in user.")
registry.register("list", cmd_list, help_text="Show the current screen.", aliases=["ls"])
registry.register("view", cmd_view, help_text="Switch screen: /view landing | login | signup.")
registry.register("landing", _show(View.LANDING), help_text="Back to the landing screen.", aliases=["back"])
registry.register("login", _show(View.LOGIN), help_text="Show the sign-in form.")
registry.register("signup", _show(View.SIGNUP), help_text="Show the sign-up form.")
registry.register("auth", cmd_auth, help_text="Submit the current form: /auth <email> <password>.")
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("done", cmd_done, help_text="Check off a task: /done <n>.", aliases=["x"])
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <n> [new title].", aliases=["e"])
registry.register("cancel", cmd_cancel, help_text="Leave rename mode without saving.")
registry.register("reload", cmd_reload, help_text="Fetch tasks from the server.", aliases=["r"])
registry.register("logout", cmd_logout, help_text="Sign out.", aliases=["signout"])
