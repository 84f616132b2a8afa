import json
import logging

import pytest

from qrcraft.logging import AUDIT, JsonFormatter, audit, get_logger, trace


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    root = logging.getLogger("qrcraft")
    handler = ListHandler()
    old_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    yield handler
    root.removeHandler(handler)
    root.setLevel(old_level)


def test_audit_record_is_structured(captured):
    audit("payload.encoded", logger=get_logger("test"), kind="wifi", length=33)
    (record,) = captured.records
    assert record.levelno == AUDIT
    entry = json.loads(JsonFormatter().format(record))
    assert entry["event"] == "payload.encoded"
    assert entry["src"] == "qrcraft.test"
    assert entry["ctx"] == {"kind": "wifi", "length": 33}


def test_trace_logs_enter_done_and_error(captured):
    @trace(logger_name="test")
    def double(x):
        if x < 0:
            raise ValueError("negative")
        return x * 2

    assert double(4) == 8
    with pytest.raises(ValueError):
        double(-1)

    events = [r.event for r in captured.records]
    assert events == ["double.enter", "double.done", "double.enter", "double.error"]
    assert captured.records[1].ctx == {"result": "8"}
    assert captured.records[-1].exc_info is not None
