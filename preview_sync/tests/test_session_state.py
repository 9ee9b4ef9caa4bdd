from __future__ import annotations

import json

from preview_sync.session_state import (
    SessionState,
    SessionStore,
    font_size_px,
    step_zoom_level,
)
from preview_sync.sync_controller import SyncMode


def test_width_clamped_and_written_through(tmp_path) -> None:
    path = tmp_path / "preview_session.json"
    store = SessionStore(path)

    assert store.save_width(120) == 300
    assert json.loads(path.read_text(encoding="utf-8"))["width"] == 300
    assert store.save_width(950) == 600
    assert store.save_width("480") == 480
    assert store.load_width() == 480


def test_zoom_clamped_to_percentage_range(tmp_path) -> None:
    store = SessionStore(tmp_path / "session.json")

    assert store.set_zoom(10) == 50
    assert store.set_zoom(500) == 200
    assert store.set_zoom(137) == 137


def test_values_survive_reload(tmp_path) -> None:
    path = tmp_path / "session.json"
    store = SessionStore(path)
    store.save_width(512)
    store.set_zoom(125)
    store.set_sync_mode("preview-driven")
    store.set_last_file_path("/notes/todo.md")

    reloaded = SessionStore(path).load()

    assert reloaded == SessionState(
        width=512,
        zoom_level=125,
        sync_mode=SyncMode.PREVIEW_DRIVEN,
        last_file_path="/notes/todo.md",
    )


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    defaults = SessionState(width=450, sync_mode=SyncMode.SOURCE_DRIVEN)

    state = SessionStore(path, defaults=defaults).load()

    assert state == defaults


def test_garbage_fields_are_sanitised(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps({"width": "wide", "zoom_level": 9000, "sync_mode": "sideways", "last_file_path": 7}),
        encoding="utf-8",
    )

    state = SessionStore(path).load()

    assert state.width == 420
    assert state.zoom_level == 200
    assert state.sync_mode is SyncMode.BIDIRECTIONAL
    assert state.last_file_path is None


def test_unchanged_value_does_not_rewrite(tmp_path) -> None:
    path = tmp_path / "session.json"
    store = SessionStore(path)

    store.set_zoom(100)

    assert not path.exists()


def test_font_size_follows_zoom_within_scale_bounds() -> None:
    assert font_size_px(16, 100) == 16.0
    assert font_size_px(16, 125) == 20.0
    assert font_size_px(16, 200) == 24.0
    assert font_size_px(16, 50) == 10.0


def test_zoom_steps_land_on_discrete_sizes() -> None:
    assert step_zoom_level(14, 100, +1) == 114
    assert step_zoom_level(14, 100, -1) == 86
    assert step_zoom_level(16, 150, +1) == 150
    assert step_zoom_level(20, 50, -1) == 50
    assert step_zoom_level(14, 100, 0) == 100


def test_first_write_keeps_values_saved_earlier(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps({"width": 350, "sync_mode": "independent", "last_file_path": "a.md"}),
        encoding="utf-8",
    )
    store = SessionStore(path)

    assert store.set_zoom(120) == 120

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["width"] == 350
    assert saved["sync_mode"] == "independent"
    assert saved["last_file_path"] == "a.md"
    assert saved["zoom_level"] == 120


def test_width_read_before_any_open_comes_from_disk(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"width": 510}), encoding="utf-8")

    assert SessionStore(path).load_width() == 510


def test_whole_percent_zoom_snaps_onto_scale_sizes() -> None:
    assert font_size_px(15, 107) == 16.0
    assert font_size_px(15, 110) == 16.5
    assert step_zoom_level(14, 114, +1) == 129
    assert step_zoom_level(14, 114, -1) == 100
