"""End-to-end tests: real watchdog observer, real files, real threads."""

import json
import threading
import time

import pytest

import main
from logtail.models import LogLevel
from logtail.service import LogTailService
from logtail.tailer import TailerState


def _line(message, timestamp="2024-01-01T00:00:00.000Z", level="info"):
    return json.dumps({
        "id": f"id-{message}", "timestamp": timestamp, "level": level,
        "category": "state", "message": message, "thread": "main",
    }) + "\n"


def _wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class TestWatchFlow:
    def test_load_then_follow(self, tmp_path):
        received = []
        lock = threading.Lock()

        def on_batch(records, path):
            with lock:
                received.extend(records)

        service = LogTailService(on_batch=on_batch, poll_interval=0.2)
        log = tmp_path / "app.jsonl"
        log.write_text(_line("boot"))

        initial = service.load_folder(str(tmp_path))
        assert [r.message for r in initial] == ["boot"]

        service.start_watching(str(tmp_path))
        try:
            assert service.tailer.state is TailerState.ACTIVE

            with open(log, "a", encoding="utf-8") as f:
                f.write(_line("request failed", level="error"))
                f.write("free text line\n")

            sub = tmp_path / "worker"
            sub.mkdir()
            (sub / "worker.log").write_text('{"level": "WARN", "message": "retrying"}\n')

            assert _wait_for(lambda: len(service.get_logs()) == 4)
        finally:
            service.stop_watching()

        messages = [r.message for r in service.get_logs()]
        assert messages[0] == "boot"
        assert messages.index("request failed") < messages.index("free text line")
        assert "retrying" in messages
        assert service.error_count() == 1
        with lock:
            assert sorted(r.message for r in received) == sorted(messages[1:])

    def test_rotation_is_reread(self, tmp_path):
        service = LogTailService(poll_interval=0.2)
        log = tmp_path / "app.log"
        log.write_text(_line("before-rotation-with-a-long-message"))
        service.load_folder(str(tmp_path))

        service.start_watching(str(tmp_path))
        try:
            log.write_text(_line("after"))
            assert _wait_for(lambda: any(r.message == "after" for r in service.get_logs()))
        finally:
            service.stop_watching()

        assert [r.message for r in service.get_logs()].count("after") == 1

    def test_restart_on_new_folder(self, tmp_path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()

        service = LogTailService(poll_interval=0.2)
        service.start_watching(str(first))
        service.load_folder(str(second))
        service.start_watching(str(second))
        try:
            (first / "ignored.log").write_text(_line("ignored"))
            (second / "seen.log").write_text(_line("seen"))
            assert _wait_for(lambda: len(service.get_logs()) >= 1)
            time.sleep(0.5)
        finally:
            service.stop_watching()

        assert [r.message for r in service.get_logs()] == ["seen"]


class TestCli:
    def test_no_tail_prints_oldest_first(self, tmp_path, capsys):
        (tmp_path / "a.log").write_text(
            _line("older", "2024-01-01T00:00:00.000Z")
            + _line("newer", "2024-01-02T00:00:00.000Z", level="error")
        )
        assert main.main([str(tmp_path), "--no-tail"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("older")
        assert lines[1].endswith("newer")

    def test_level_filter_and_json_output(self, tmp_path, capsys):
        (tmp_path / "a.log").write_text(_line("ok") + _line("bad", level="error"))
        assert main.main([str(tmp_path), "--no-tail", "--level", "error", "--output", "json"]) == 0
        out = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(o)["message"] for o in out] == ["bad"]
        assert json.loads(out[0])["level"] == LogLevel.ERROR.value

    def test_export(self, tmp_path, capsys):
        logs = tmp_path / "logs"
        logs.mkdir()
        (logs / "a.log").write_text(_line("x"))
        target = tmp_path / "export.json"
        assert main.main([str(logs), "--no-tail", "--export", str(target)]) == 0
        assert [d["message"] for d in json.loads(target.read_text())] == ["x"]

    def test_missing_folder(self, tmp_path):
        assert main.main([str(tmp_path / "missing"), "--no-tail"]) == 1

    @pytest.mark.parametrize("level", ["warning", "critical"])
    def test_level_choices_accepted(self, tmp_path, level):
        assert main.main([str(tmp_path), "--no-tail", "--level", level]) == 0
