from __future__ import annotations

import logging
from pathlib import Path

from stream_invoker.logging_utils import TransitionFilter, configure_logging


def _record(level: int, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("stream_invoker.tailer.worker", level, __file__, 1, "message", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_transition_filter_keeps_transitions_and_warnings_only() -> None:
    log_filter = TransitionFilter()
    assert log_filter.filter(_record(logging.INFO, transition=True)) is True
    assert log_filter.filter(_record(logging.WARNING)) is True
    assert log_filter.filter(_record(logging.ERROR)) is True
    assert log_filter.filter(_record(logging.INFO)) is False
    assert log_filter.filter(_record(logging.DEBUG, transition=False)) is False


def test_transitions_log_records_lifecycle_but_not_poll_chatter(tmp_path: Path, monkeypatch) -> None:
    root = logging.getLogger()
    previous_level = root.level
    monkeypatch.setattr(root, "handlers", [])
    log_path = tmp_path / "logs" / "transitions.log"
    try:
        configure_logging(log_path=str(log_path))
        logger = logging.getLogger("stream_invoker.tailer.worker")
        logger.info("Polling for new DynamoDB stream records...")
        logger.info("Stream tailer state POLLING -> STOPPED", extra={"transition": True})
        logger.warning("Run metrics export failed path=/tmp/x")
        for handler in root.handlers:
            handler.flush()
            handler.close()
    finally:
        root.setLevel(previous_level)

    text = log_path.read_text(encoding="utf-8")
    assert "POLLING -> STOPPED" in text
    assert "Run metrics export failed" in text
    assert "Polling for new" not in text
