from __future__ import annotations

import threading
import time

import pytest

pytestmark = pytest.mark.pyqt_required


@pytest.fixture(scope="module")
def qt_app():
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


def _pump(app, predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        app.processEvents()
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_qt_scheduler_fires_and_cancels(qt_app) -> None:
    from preview_sync.services.qt_scheduler import QtScheduler

    scheduler = QtScheduler()
    calls: list[str] = []

    scheduler.after(5, lambda: calls.append("kept"))
    dropped = scheduler.after(5, lambda: calls.append("dropped"))
    scheduler.after_cancel(dropped)

    assert _pump(qt_app, lambda: calls == ["kept"])
    assert scheduler.pending == 0


def test_dispatcher_runs_worker_callbacks_on_owner_thread(qt_app) -> None:
    from preview_sync.qt_bridge import QtDispatcher

    dispatcher = QtDispatcher()
    seen: list[str] = []
    worker = threading.Thread(target=lambda: dispatcher.deliver(lambda: seen.append(threading.current_thread().name)))
    worker.start()
    worker.join()

    assert _pump(qt_app, lambda: bool(seen))
    assert seen == [threading.main_thread().name]


def test_qt_host_watches_loaded_file(qt_app, tmp_path) -> None:
    from preview_sync.context import build_panel_context
    from preview_sync.panel_state import PanelState
    from preview_sync.qt_bridge import QtPreviewHost

    doc = tmp_path / "a.md"
    doc.write_text("# hi\n", encoding="utf-8")
    ctx = build_panel_context(root=tmp_path, env={}, log_dir=tmp_path / "logs")
    host = QtPreviewHost(ctx)

    host.panel.toggle(path=str(doc))
    assert _pump(qt_app, lambda: host.panel.current_state() is PanelState.VIEWING)
    assert host.file_watcher.watched_files() == [str(doc)]

    doc.unlink()
    assert _pump(qt_app, lambda: host.panel.current_state() is PanelState.FILE_ERROR)
