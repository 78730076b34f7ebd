import json
import logging

from config import Config
from observability.logging import (
    LOG_FILE_NAME,
    ContextFilter,
    JsonFormatter,
    TextFormatter,
    clear_context,
    set_job_context,
    setup_logging,
)


def _record(msg="Source processed | stored=%d", args=(2,), level=logging.INFO):
    record = logging.LogRecord("pipeline", level, __file__, 10, msg, args, None)
    ContextFilter().filter(record)
    return record


def test_text_format_carries_job_context(restore_root):
    set_job_context("feeds", "3f2a9c1d")
    line = TextFormatter().format(_record())
    assert "[INFO] [feeds:3f2a9c1d] pipeline: Source processed | stored=2" in line

    clear_context()
    assert "[-:-]" in TextFormatter().format(_record())


def test_json_format_includes_extra_fields(restore_root):
    set_job_context("posts", "abc")
    record = _record(level=logging.WARNING)
    record.profile_id = "bp-1"

    data = json.loads(JsonFormatter().format(record))
    assert data["job"] == "posts"
    assert data["run_id"] == "abc"
    assert data["message"] == "Source processed | stored=2"
    assert data["profile_id"] == "bp-1"
    assert data["source"]["line"] == 10
    assert "trace_id" not in data


def test_setup_logging_writes_log_file(tmp_path, restore_root):
    config = Config(log_dir=tmp_path / "log", log_format="json")
    assert setup_logging(config) is True

    logging.getLogger("curator.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = (tmp_path / "log" / LOG_FILE_NAME).read_text().splitlines()
    assert json.loads(lines[-1])["message"] == "hello"
