# tests/test_controller_tasks.py

from __future__ import annotations

import asyncio

import pytest

from dead_simple_tasks.core.results import Applied, RemoteFailure, ValidationSkipped

from .fakes import EMAIL, settle


async def _start(controller) -> None:
    await controller.initialize()
    await controller.wait_idle()


@pytest.mark.asyncio
async def test_reload_loads_rows_in_created_at_order(controller, signed_in) -> None:
    await _start(controller)

    assert [t.title for t in controller.tasks] == ["write report", "call mom"]
    for a, b in zip(controller.tasks, controller.tasks[1:]):
        assert a.created_dt <= b.created_dt
    assert controller.last_error is None


@pytest.mark.asyncio
async def test_reload_twice_is_idempotent(controller, signed_in) -> None:
    await _start(controller)

    await controller.reload()
    first = list(controller.tasks)
    await controller.reload()

    assert controller.tasks == first


@pytest.mark.asyncio
async def test_reload_failure_keeps_tasks_and_sets_error(controller, signed_in) -> None:
    await _start(controller)
    before = list(controller.tasks)

    signed_in.tasks.failures["select"] = "network down"
    outcome = await controller.reload()

    assert outcome == RemoteFailure("network down")
    assert controller.tasks == before
    assert controller.last_error == "network down"


@pytest.mark.asyncio
async def test_reload_without_session_is_skipped(controller, remote) -> None:
    outcome = await controller.reload()

    assert isinstance(outcome, ValidationSkipped)
    assert remote.tasks.count("select") == 0


@pytest.mark.asyncio
async def test_add_is_visible_before_the_insert_resolves(controller, signed_in) -> None:
    signed_in.tasks.rows = []
    await _start(controller)
    assert controller.is_empty

    gate = signed_in.tasks.hold("insert")
    pending = asyncio.create_task(controller.add("buy milk"))
    await settle()

    assert [t.title for t in controller.tasks] == ["buy milk"]
    assert controller.tasks[0].is_temporary
    assert controller.tasks[0].email == EMAIL

    gate.set()
    assert await pending == Applied()


@pytest.mark.asyncio
async def test_add_confirmed_gets_authoritative_id_and_sorts_last(controller, signed_in) -> None:
    await _start(controller)

    outcome = await controller.add("  buy milk  ")

    assert outcome == Applied()
    assert [t.title for t in controller.tasks] == ["write report", "call mom", "buy milk"]
    added = controller.tasks[-1]
    assert added.id == 3
    assert not added.is_temporary
    # Placeholder replaced, not duplicated.
    assert len({t.id for t in controller.tasks}) == len(controller.tasks)
    assert signed_in.tasks.calls[-2] == ("insert", "buy milk")


@pytest.mark.asyncio
async def test_add_sends_payload_without_id(controller, signed_in) -> None:
    await _start(controller)
    await controller.add("buy milk")

    row = signed_in.tasks.rows[-1]
    assert row.email == EMAIL
    assert row.created_at.endswith("Z")


@pytest.mark.asyncio
@pytest.mark.parametrize("title", ["", "   ", "\t\n"])
async def test_add_blank_title_is_skipped(controller, signed_in, title) -> None:
    await _start(controller)
    before = list(controller.tasks)

    outcome = await controller.add(title)

    assert isinstance(outcome, ValidationSkipped)
    assert controller.tasks == before
    assert signed_in.tasks.count("insert") == 0


@pytest.mark.asyncio
async def test_add_without_session_is_skipped(controller, remote) -> None:
    outcome = await controller.add("buy milk")

    assert isinstance(outcome, ValidationSkipped)
    assert controller.tasks == []
    assert remote.tasks.count("insert") == 0


@pytest.mark.asyncio
async def test_add_failure_rolls_back(controller, signed_in) -> None:
    await _start(controller)
    snapshot = list(controller.tasks)

    signed_in.tasks.failures["insert"] = "permission denied"
    outcome = await controller.add("x")

    assert outcome == RemoteFailure("permission denied")
    assert controller.tasks == snapshot
    assert controller.last_error == "permission denied"


@pytest.mark.asyncio
async def test_temp_ids_are_unique_and_negative(controller, signed_in) -> None:
    await _start(controller)
    ids = {controller._next_temp_id() for _ in range(100)}

    assert len(ids) == 100
    assert all(i < 0 for i in ids)


@pytest.mark.asyncio
async def test_complete_removes_exactly_one_task(controller, signed_in) -> None:
    await _start(controller)

    outcome = await controller.complete(1)

    assert outcome == Applied()
    assert [t.id for t in controller.tasks] == [2]
    assert [t.id for t in signed_in.tasks.rows] == [2]
    assert signed_in.tasks.count("select") == 1  # no reload after delete


@pytest.mark.asyncio
async def test_complete_is_optimistic(controller, signed_in) -> None:
    await _start(controller)

    gate = signed_in.tasks.hold("delete")
    pending = asyncio.create_task(controller.complete(2))
    await settle()
    assert [t.id for t in controller.tasks] == [1]

    gate.set()
    assert await pending == Applied()


@pytest.mark.asyncio
async def test_complete_failure_restores_snapshot(controller, signed_in) -> None:
    await _start(controller)
    snapshot = list(controller.tasks)

    signed_in.tasks.failures["delete"] = "timeout"
    outcome = await controller.complete(1)

    assert outcome == RemoteFailure("timeout")
    assert controller.tasks == snapshot
    assert controller.last_error == "timeout"


@pytest.mark.asyncio
async def test_complete_unknown_id_is_ignored(controller, signed_in) -> None:
    await _start(controller)

    outcome = await controller.complete(999)

    assert isinstance(outcome, ValidationSkipped)
    assert signed_in.tasks.count("delete") == 0


@pytest.mark.asyncio
async def test_rename_updates_title(controller, signed_in) -> None:
    await _start(controller)
    await controller.begin_edit(1)

    outcome = await controller.rename(1, "  write final report ")

    assert outcome == Applied()
    assert controller.find(1).title == "write final report"
    assert controller.editing_id is None
    assert signed_in.tasks.calls[-1] == ("update", 1, "write final report")


@pytest.mark.asyncio
async def test_rename_to_same_title_is_noop(controller, signed_in) -> None:
    await _start(controller)
    await controller.begin_edit(1)

    outcome = await controller.rename(1, "write report")

    assert isinstance(outcome, ValidationSkipped)
    assert controller.editing_id is None
    assert signed_in.tasks.count("update") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("title", ["", "    "])
async def test_rename_to_blank_is_noop(controller, signed_in, title) -> None:
    await _start(controller)
    await controller.begin_edit(2)

    outcome = await controller.rename(2, title)

    assert isinstance(outcome, ValidationSkipped)
    assert controller.editing_id is None
    assert controller.find(2).title == "call mom"
    assert signed_in.tasks.count("update") == 0


@pytest.mark.asyncio
async def test_rename_failure_restores_snapshot(controller, signed_in) -> None:
    await _start(controller)
    snapshot = list(controller.tasks)

    signed_in.tasks.failures["update"] = "row locked"
    outcome = await controller.rename(2, "call dad")

    assert outcome == RemoteFailure("row locked")
    assert controller.tasks == snapshot
    assert controller.last_error == "row locked"


@pytest.mark.asyncio
async def test_successful_operation_clears_last_error(controller, signed_in) -> None:
    await _start(controller)
    signed_in.tasks.failures["delete"] = "timeout"
    await controller.complete(1)
    assert controller.last_error == "timeout"

    del signed_in.tasks.failures["delete"]
    await controller.complete(1)

    assert controller.last_error is None


@pytest.mark.asyncio
async def test_edit_mode_commit_and_cancel(controller, signed_in) -> None:
    await _start(controller)

    assert await controller.begin_edit(1)
    assert controller.editing_title == "write report"
    controller.set_editing_title("write the report")
    # Only one task can be in rename mode; switching submits the open editor.
    assert await controller.begin_edit(2)
    assert controller.editing_id == 2
    assert controller.editing_title == "call mom"
    assert controller.find(1).title == "write the report"
    assert signed_in.tasks.calls[-1] == ("update", 1, "write the report")

    controller.cancel_edit()
    assert controller.editing_id is None
    assert isinstance(await controller.commit_edit(), ValidationSkipped)

    await controller.begin_edit(2)
    controller.set_editing_title("call dad")
    assert await controller.commit_edit() == Applied()
    assert controller.find(2).title == "call dad"
    assert controller.editing_id is None


@pytest.mark.asyncio
async def test_begin_edit_unknown_task(controller, signed_in) -> None:
    await _start(controller)

    assert await controller.begin_edit(42) is False
    assert controller.editing_id is None
