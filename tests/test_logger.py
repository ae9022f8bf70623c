import json
import logging

import pytest

from tsbundle.logger import LOGGING_CONFIG, BundleLogger, logger, set_level


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def records():
    handler = _Collect()
    previous = logger.level
    logger.addHandler(handler)
    yield handler.records
    logger.removeHandler(handler)
    logger.setLevel(previous)


def test_event_serialised_as_json(records):
    set_level(logging.DEBUG)
    BundleLogger.warning("Failed to parse file", path="/p/a.ts", reason="boom")
    BundleLogger.debug("Bundled declarations", entries=1)

    assert [r.levelno for r in records] == [logging.WARNING, logging.DEBUG]
    assert json.loads(records[0].getMessage()) == {
        "event": "Failed to parse file",
        "data": {"path": "/p/a.ts", "reason": "boom"},
    }


def test_below_level_is_dropped(records):
    set_level(logging.WARNING)
    BundleLogger.info("Wrote bundle")
    BundleLogger.error("Invalid batch entry", entry="x")

    assert len(records) == 1
    assert json.loads(records[0].getMessage()) == {"event": "Invalid batch entry", "data": {"entry": "x"}}


def test_facade_surface():
    assert list(LOGGING_CONFIG["formatters"]) == ["default"]
    assert not hasattr(BundleLogger, "critical")
