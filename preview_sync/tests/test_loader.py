from __future__ import annotations

import threading

from preview_sync.errors import FileNotFound, FileReadError
from preview_sync.loader import FileLoader, read_text


class QueuedExecutor:
    def __init__(self) -> None:
        self.jobs: list = []

    def __call__(self, job) -> None:
        self.jobs.append(job)

    def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job()


def _recorder():
    results: list[tuple[str, str, object]] = []
    return (
        results,
        lambda path, text: results.append(("ok", path, text)),
        lambda path, error: results.append(("error", path, error)),
    )


def test_success_is_delivered(tmp_path) -> None:
    doc = tmp_path / "a.md"
    doc.write_text("# Title\n", encoding="utf-8")
    executor = QueuedExecutor()
    loader = FileLoader(executor=executor)
    results, ok, fail = _recorder()

    token = loader.load(str(doc), ok, fail)
    assert loader.active_token == token
    executor.run_all()

    assert results == [("ok", str(doc), "# Title\n")]
    assert loader.active_token is None


def test_missing_file_reports_enoent(tmp_path) -> None:
    executor = QueuedExecutor()
    loader = FileLoader(executor=executor)
    results, ok, fail = _recorder()

    loader.load(str(tmp_path / "missing.md"), ok, fail)
    executor.run_all()

    kind, _path, error = results[0]
    assert kind == "error"
    assert isinstance(error, FileNotFound)
    assert error.reason == "ENOENT"


def test_superseded_load_never_calls_back(tmp_path) -> None:
    executor = QueuedExecutor()
    loader = FileLoader(reader=lambda path: f"body of {path}", executor=executor)
    results, ok, fail = _recorder()

    loader.load("a.md", ok, fail)
    loader.load("b.md", ok, fail)
    executor.run_all()

    assert results == [("ok", "b.md", "body of b.md")]


def test_cancelled_load_is_suppressed() -> None:
    executor = QueuedExecutor()
    loader = FileLoader(reader=lambda path: "text", executor=executor)
    results, ok, fail = _recorder()

    token = loader.load("a.md", ok, fail)
    assert loader.cancel(token + 1) is False
    assert loader.cancel(token) is True
    executor.run_all()

    assert results == []


def test_unexpected_reader_failure_becomes_read_error() -> None:
    def _boom(path: str) -> str:
        raise RuntimeError("disk on fire")

    executor = QueuedExecutor()
    loader = FileLoader(reader=_boom, executor=executor)
    results, ok, fail = _recorder()

    loader.load("a.md", ok, fail)
    executor.run_all()

    error = results[0][2]
    assert isinstance(error, FileReadError)
    assert error.reason == "disk on fire"


def test_read_text_maps_os_errors(tmp_path) -> None:
    binary = tmp_path / "bad.md"
    binary.write_bytes(b"\xff\xfe\xfa")

    for target, reason in ((tmp_path, "EISDIR"), (binary, "not valid UTF-8")):
        try:
            read_text(str(target))
        except FileReadError as exc:
            assert exc.reason == reason
        else:
            raise AssertionError(f"{target} should not be readable")


def test_default_executor_runs_on_worker_thread(tmp_path) -> None:
    doc = tmp_path / "a.md"
    doc.write_text("hello", encoding="utf-8")
    done = threading.Event()
    seen: dict[str, object] = {}

    def _ok(path: str, text: str) -> None:
        seen["text"] = text
        seen["thread"] = threading.current_thread().name
        done.set()

    FileLoader().load(str(doc), _ok, lambda path, error: done.set())

    assert done.wait(2.0)
    assert seen["text"] == "hello"
    assert seen["thread"] == "PreviewSync-Loader"
