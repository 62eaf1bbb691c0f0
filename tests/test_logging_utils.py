from __future__ import annotations

import json
import logging
import sys

from cardqueue.core.logging_utils import (
    EnhancedJsonFormatter,
    generate_correlation_id,
    truncate_log_content,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="cardqueue.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="pending_queue_sync_completed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_groups_queue_and_performance_fields() -> None:
    formatter = EnhancedJsonFormatter(include_location=False)
    record = _record(
        slot="pendingCards",
        success_count=2,
        duration_seconds=0.5,
        correlation_id="abc123",
        error="none",
    )

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "pending_queue_sync_completed"
    assert payload["queue"] == {"slot": "pendingCards", "success_count": 2}
    assert payload["performance"] == {"duration_seconds": 0.5}
    assert payload["extra"] == {"error": "none"}
    assert payload["correlation_id"] == "abc123"
    assert "module" not in payload


def test_formatter_includes_exception_details() -> None:
    formatter = EnhancedJsonFormatter()
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(formatter.format(record))

    assert payload["exception"]["type"] == "RuntimeError"
    assert payload["exception"]["message"] == "boom"
    assert payload["line"] == 10


def test_truncate_log_content() -> None:
    assert truncate_log_content(None) is None
    assert truncate_log_content("") == ""
    assert truncate_log_content("short", 80) == "short"

    text = "word " * 40
    truncated = truncate_log_content(text, 60)
    assert truncated.endswith("...")
    assert len(truncated) <= 60

    assert truncate_log_content("abcdefghijklmnopqrstuvwxyz", 10) == "abcdefghij"


def test_correlation_id_is_short_hex() -> None:
    cid = generate_correlation_id()

    assert len(cid) == 12
    int(cid, 16)
