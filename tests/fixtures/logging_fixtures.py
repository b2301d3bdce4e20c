"""Fixtures for capturing loguru output."""

import json
from typing import List

import pytest
from loguru import logger


@pytest.fixture
def captured_logs():
    """
    Collect every loguru record emitted during the test.

    Yields a list of dicts with "level", "message" and "extra".
    """
    records: List[dict] = []

    def sink(message):
        record = message.record
        extra = record["extra"]
        # the stdout sink's filter may already have serialized "extra" to JSON
        if isinstance(extra, str):
            extra = json.loads(extra)
        records.append({"level": record["level"].name, "message": record["message"], "extra": dict(extra)})

    handler_id = logger.add(sink, level="DEBUG")
    yield records
    logger.remove(handler_id)
