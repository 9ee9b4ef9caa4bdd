from __future__ import annotations

import pytest

from preview_sync.errors import InvalidTransition
from preview_sync.panel_state import TRANSITIONS, PanelState, PanelStateMachine, PanelTrigger
from preview_sync.services.scheduler import VirtualScheduler
from preview_sync.services.sync_timers import SyncTimers


def _machine():
    scheduler = VirtualScheduler()
    timers = SyncTimers(after=scheduler.after, after_cancel=scheduler.after_cancel)
    changes: list[tuple[PanelState, PanelState, PanelTrigger]] = []
    machine = PanelStateMachine(timers, on_change=lambda prev, cur, trig: changes.append((prev, cur, trig)))
    return machine, scheduler, changes


def test_open_load_scroll_settle_lifecycle() -> None:
    machine, scheduler, _changes = _machine()

    assert machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md") is PanelState.FILE_LOADING
    assert machine.file_path == "a.md"
    assert machine.dispatch(PanelTrigger.LOAD_SUCCESS) is PanelState.VIEWING
    assert machine.notify_activity() is True
    assert machine.state is PanelState.SYNCING

    scheduler.advance(49)
    assert machine.state is PanelState.SYNCING
    scheduler.advance(1)
    assert machine.state is PanelState.VIEWING


def test_activity_rearms_settle_window() -> None:
    machine, scheduler, _changes = _machine()
    machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md")
    machine.dispatch(PanelTrigger.LOAD_SUCCESS)

    machine.notify_activity()
    scheduler.advance(40)
    machine.notify_activity()
    scheduler.advance(40)
    assert machine.state is PanelState.SYNCING

    scheduler.advance(10)
    assert machine.state is PanelState.VIEWING


def test_force_settle_reverts_without_waiting() -> None:
    machine, scheduler, _changes = _machine()
    machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md")
    machine.dispatch(PanelTrigger.LOAD_SUCCESS)
    machine.notify_activity()

    assert machine.force_settle() is True
    assert machine.state is PanelState.VIEWING
    assert scheduler.pending == 0
    assert machine.force_settle() is False


def test_failure_and_retry_cycle() -> None:
    machine, _scheduler, _changes = _machine()
    machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md")

    machine.dispatch(PanelTrigger.LOAD_FAILURE, reason="ENOENT")
    assert machine.state is PanelState.FILE_ERROR
    assert machine.error_reason == "ENOENT"

    machine.dispatch(PanelTrigger.RETRY)
    assert machine.state is PanelState.FILE_LOADING
    assert machine.error_reason is None
    machine.dispatch(PanelTrigger.LOAD_SUCCESS)
    assert machine.state is PanelState.VIEWING


def test_toggle_open_without_file_is_empty() -> None:
    machine, _scheduler, changes = _machine()

    machine.dispatch(PanelTrigger.TOGGLE_OPEN)

    assert machine.state is PanelState.EMPTY
    assert changes == [(PanelState.CLOSED, PanelState.EMPTY, PanelTrigger.TOGGLE_OPEN)]


@pytest.mark.parametrize("trigger", [PanelTrigger.ACTIVITY, PanelTrigger.FILE_DELETED])
def test_file_deleted_from_live_states(trigger: PanelTrigger) -> None:
    machine, scheduler, _changes = _machine()
    machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md")
    machine.dispatch(PanelTrigger.LOAD_SUCCESS)
    if trigger is PanelTrigger.ACTIVITY:
        machine.notify_activity()

    machine.dispatch(PanelTrigger.FILE_DELETED, reason="file deleted")

    assert machine.state is PanelState.FILE_ERROR
    assert scheduler.pending == 0


def test_illegal_triggers_are_rejected_and_state_kept() -> None:
    machine, _scheduler, changes = _machine()

    with pytest.raises(InvalidTransition):
        machine.dispatch(PanelTrigger.LOAD_SUCCESS)
    machine.dispatch(PanelTrigger.TOGGLE_OPEN)
    with pytest.raises(InvalidTransition):
        machine.dispatch(PanelTrigger.RETRY)
    with pytest.raises(InvalidTransition):
        machine.dispatch(PanelTrigger.OPEN_FILE)

    assert machine.state is PanelState.EMPTY
    assert len(changes) == 1


def test_closed_is_inert() -> None:
    machine, scheduler, changes = _machine()

    assert machine.notify_activity() is False
    machine.dispatch(PanelTrigger.TOGGLE_CLOSE)

    assert machine.state is PanelState.CLOSED
    assert changes == []
    assert scheduler.pending == 0


def test_every_state_can_close() -> None:
    for state in PanelState:
        assert TRANSITIONS[(state, PanelTrigger.TOGGLE_CLOSE)] is PanelState.CLOSED


def test_close_while_syncing_drops_settle_timer() -> None:
    machine, scheduler, _changes = _machine()
    machine.dispatch(PanelTrigger.OPEN_FILE, path="a.md")
    machine.dispatch(PanelTrigger.LOAD_SUCCESS)
    machine.notify_activity()

    machine.dispatch(PanelTrigger.TOGGLE_CLOSE)
    scheduler.advance(100)

    assert machine.state is PanelState.CLOSED
    assert scheduler.pending == 0
