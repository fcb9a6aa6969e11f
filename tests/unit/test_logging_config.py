from pathlib import Path

from biomap.utils.logging_config import (
    LogFiles,
    Logger,
    clear_trace_id,
    get_trace_id,
    set_trace_id,
)


def test_log_files_come_from_yaml_config():
    assert LogFiles.RESEARCH == "research/research.log"
    assert LogFiles.ERROR == "errors/error.log"
    assert LogFiles.get("custom") == "custom/custom.log"


def test_trace_id_lifecycle():
    tid = set_trace_id()
    assert tid.startswith("req-")
    assert get_trace_id() == tid

    assert set_trace_id("fixed") == "fixed"
    clear_trace_id()
    assert get_trace_id() is None


def test_logger_writes_trace_id_to_named_file(tmp_path: Path):
    Logger.init(level="INFO", base_dir=str(tmp_path))
    set_trace_id("req-abc")

    Logger.info("Research map built", file=LogFiles.RESEARCH)
    Logger.debug("hidden", file=LogFiles.RESEARCH)
    Logger.close()

    text = (tmp_path / "research" / "research.log").read_text(encoding="utf-8")
    assert "req-abc" in text
    assert "Research map built" in text
    assert "hidden" not in text
    clear_trace_id()
