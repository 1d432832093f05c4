import json
import logging
from pathlib import Path

from archconfigs.observers.console import ConsoleObserver
from archconfigs.observers.dispatcher import EventBus
from archconfigs.observers.events import RunSummary, StepFailed, StepSkipped, StepWarned, new_ctx
from archconfigs.observers.jsonfile import JsonFileObserver
from archconfigs.observers.logger import LoggerObserver

from conftest import Capture

CTX = new_ctx(pipeline="hyprland", root="/", run_id="run-1")


class Broken:
    def notify(self, event):
        raise RuntimeError("disk full")


def test_bus_keeps_going_when_an_observer_fails():
    cap = Capture()
    bus = EventBus([Broken(), cap])
    bus.emit(StepSkipped(name="hostid", **CTX))
    assert cap.kinds() == ["StepSkipped"]


def test_bus_stamps_each_event_when_it_is_emitted():
    cap = Capture()
    stale = {**CTX, "ts": "2000-01-01T00:00:00Z"}
    EventBus([cap]).emit(StepSkipped(name="hostid", **stale))

    ev = cap.events[0]
    assert ev.ts != "2000-01-01T00:00:00Z"
    assert ev.ts.endswith("Z")
    assert ev.run_id == "run-1" and ev.name == "hostid"


def test_json_file_observer_appends_one_line_per_event(tmp_path: Path):
    path = tmp_path / "events" / "run-1.jsonl"
    ob = JsonFileObserver(path)
    ob.notify(StepSkipped(name="hostid", **CTX))
    ob.notify(RunSummary(created=1, modified=0, skipped=1, warned=0, status="OK", **CTX))

    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert [r["type"] for r in lines] == ["StepSkipped", "RunSummary"]
    assert lines[0]["run_id"] == "run-1"
    assert lines[1]["status"] == "OK" and lines[1]["failed_step"] is None


def test_logger_observer_levels(caplog):
    logger = logging.getLogger("observer-test")
    ob = LoggerObserver(logger)
    with caplog.at_level(logging.DEBUG, logger="observer-test"):
        ob.notify(StepFailed(name="initramfs", error="mkinitcpio failed", **CTX))
        ob.notify(StepWarned(name="user-ssh-keys", error="404", **CTX))
        ob.notify(StepSkipped(name="hostid", **CTX))

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.ERROR, logging.WARNING, logging.DEBUG]
    assert "name=initramfs" in caplog.records[0].getMessage()


def test_console_observer_prints_event(capsys):
    ConsoleObserver().notify(StepWarned(name="user-ssh-keys", error="404", **CTX))
    out = capsys.readouterr().out
    assert "StepWarned pipeline=hyprland" in out
    assert "name=user-ssh-keys" in out
