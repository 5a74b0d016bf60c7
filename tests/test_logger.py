import json

import logger
from logger import UILogger, log_event, report_error


def test_level_filter_and_sinks(tmp_path):
    lines = []
    log = UILogger(console_fn=lines.append, file_path=tmp_path / "app.log", also_stdout=False)
    log.debug("hidden")
    log("polling armed")
    log.error("fetch failed")
    assert len(lines) == 2
    assert "[INFO] polling armed" in lines[0]
    assert "[ERROR] fetch failed" in lines[1]
    assert (tmp_path / "app.log").read_text(encoding="utf-8").count("\n") == 2


def test_debug_level_lets_everything_through():
    lines = []
    log = UILogger(console_fn=lines.append, also_stdout=False, min_level="debug")
    log.debug("event display-stats")
    assert "[DEBUG]" in lines[0]


def test_failing_sink_is_ignored():
    def broken(_line):
        raise RuntimeError("widget destroyed")

    UILogger(console_fn=broken, also_stdout=False).warn("still fine")


def test_log_file_rolls_over(tmp_path):
    path = tmp_path / "big.log"
    path.write_text("x" * 50, encoding="utf-8")
    logger._append_line(path, "fresh", max_bytes=10)
    assert path.read_text(encoding="utf-8") == "fresh\n"
    assert (tmp_path / "big.log.1").exists()


def test_report_error_writes_json(tmp_path, monkeypatch):
    monkeypatch.setattr(logger, "_logs_dir", lambda: tmp_path)
    report_error(ValueError("bad payload"), context="fetch_stats", extra={"status": 500})
    record = json.loads((tmp_path / "errors.log").read_text(encoding="utf-8").strip())
    assert record["event"] == "error"
    assert record["detail"]["context"] == "fetch_stats"
    assert record["detail"]["type"] == "ValueError"
    assert record["detail"]["status"] == 500
    log_event("tick", {"n": 1})
    assert (tmp_path / "app.log").exists()
