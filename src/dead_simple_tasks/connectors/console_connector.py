# src/dead_simple_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.render import describe_outcome, render_screen
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _prompt(state: AppState) -> str:
    ctl = state.controller
    if ctl.editing_id is not None:
        return "... new title: "
    if ctl.session is None:
        return f"[{ctl.view.value}] > "
    return "Add task... > "


async def handle_line(state: AppState, line: str, emit=None) -> str | None:
    """
    One console line -> one reply.

    Slash commands go to the registry. A plain line is the text input of the current
    screen: the new title while renaming, otherwise a new task.
    """
    ctl = state.controller
    app_name = str(getattr(state.settings, "app_name", "Dead Simple Tasks"))

    cmd_response = await command_registry.handle(state, line, emit=emit)
    if cmd_response is not None:
        return cmd_response

    if ctl.editing_id is not None:
        ctl.set_editing_title(line)
        outcome = await ctl.commit_edit()
        return describe_outcome(outcome, render_screen(ctl, app_name))

    if ctl.session is None:
        return "Not signed in. Use /login or /signup (see /help)."

    if not line.strip():
        return None

    outcome = await ctl.add(line)
    return describe_outcome(outcome, render_screen(ctl, app_name))


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (backend=%s).", state.backend)
    app_name = str(getattr(state.settings, "app_name", "Dead Simple Tasks"))
    ctl = state.controller

    await ctl.wait_idle()
    _print_ts(f"[CONSOLE] {app_name}. Use /help for commands. Use /exit to quit.\n")
    print(render_screen(ctl, app_name))

    def emit(text: str) -> None:
        # Immediate user-visible feedback while a remote call is in flight.
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            raw = await asyncio.to_thread(input, _prompt(state))
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        user_input = raw.strip()

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # An empty line while renaming submits it (blur); otherwise ignore it.
        if not user_input and ctl.editing_id is None:
            continue

        try:
            reply = await handle_line(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(f"[{_ts_local()}] {reply}")
