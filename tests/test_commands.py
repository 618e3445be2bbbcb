# tests/test_commands.py

from __future__ import annotations

import pytest

from dead_simple_tasks.cli.commands import CommandRegistry
from dead_simple_tasks.connectors.console_connector import handle_line

from .fakes import EMAIL


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    async def handler(state, args, emit):
        seen.append(args)
        if emit is not None:
            emit("note")
        return "ok"

    reg.register("a", handler, "a", aliases=["b"])

    assert await reg.handle(state, "/a x y") == "ok"
    assert await reg.handle(state, "/B z", emit=lambda _: None) == "ok"
    assert seen == [["x", "y"], ["z"]]
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_signed_out_console_flow(state) -> None:
    await state.controller.initialize()

    assert "Not signed in" in (await handle_line(state, "buy milk") or "")

    reply = await handle_line(state, "/signup")
    assert "Create an account" in reply

    reply = await handle_line(state, "/auth new@example.com hunter22")
    assert reply == "Check your email to verify"
    assert state.controller.session is None

    reply = await handle_line(state, "/login")
    assert "Welcome back" in reply
    assert state.controller.signup_message is None


@pytest.mark.asyncio
async def test_login_add_edit_done(state, remote) -> None:
    remote.auth.accounts[EMAIL] = "secret123"
    await state.controller.initialize()

    reply = await handle_line(state, f"/auth {EMAIL} secret123")
    assert "write report" in reply and "call mom" in reply

    reply = await handle_line(state, "buy milk")
    assert "buy milk" in reply
    assert [t.title for t in remote.tasks.rows][-1] == "buy milk"

    await handle_line(state, "/edit 2 call dad")
    assert state.controller.tasks[1].title == "call dad"

    # Rename mode: the next plain line is the new title.
    reply = await handle_line(state, "/edit 1")
    assert "Editing #1" in reply
    assert "(editing)" in (await handle_line(state, "/list"))
    await handle_line(state, "write the report")
    assert state.controller.tasks[0].title == "write the report"
    assert state.controller.editing_id is None

    await handle_line(state, "/done 3")
    assert [t.title for t in state.controller.tasks] == ["write the report", "call dad"]

    assert "Usage" in await handle_line(state, "/done 9")


@pytest.mark.asyncio
async def test_empty_line_in_rename_mode_keeps_title(state, signed_in) -> None:
    await state.controller.initialize()
    await state.controller.wait_idle()

    await handle_line(state, "/edit 1")
    reply = await handle_line(state, "")

    assert "Nothing to do" in reply
    assert state.controller.editing_id is None
    assert state.controller.tasks[0].title == "write report"
    assert signed_in.tasks.count("update") == 0


@pytest.mark.asyncio
async def test_failed_add_shows_error(state, signed_in) -> None:
    await state.controller.initialize()
    await state.controller.wait_idle()
    signed_in.tasks.failures["insert"] = "permission denied"

    reply = await handle_line(state, "/add x")

    assert reply == "Error: permission denied"
    assert [t.title for t in state.controller.tasks] == ["write report", "call mom"]


@pytest.mark.asyncio
async def test_logout_and_status(state, signed_in) -> None:
    await state.controller.initialize()
    await state.controller.wait_idle()

    assert EMAIL in await handle_line(state, "/status")

    reply = await handle_line(state, "/logout")
    assert reply.startswith("Signed out.")
    assert "(signed out)" in await handle_line(state, "/status")
    assert await handle_line(state, "/logout") == "Not signed in."
