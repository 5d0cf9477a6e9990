"""Tests for the per-key log throttle."""
from __future__ import annotations

import logging

from aim_assist.logger import LogThrottler, setup_logging


class TestLogThrottler:
    def test_throttles_per_key(self, clock):
        throttle = LogThrottler(1000, clock=clock)
        assert throttle.should_log("center")
        assert not throttle.should_log("center")
        assert throttle.should_log("target")
        clock.advance(0.5)
        assert not throttle.should_log("center")
        clock.advance(0.5)
        assert throttle.should_log("center")

    def test_custom_interval(self, clock):
        throttle = LogThrottler(1000, clock=clock)
        assert throttle.should_log("k", throttle_ms=100)
        clock.advance(0.1)
        assert throttle.should_log("k", throttle_ms=100)


def test_setup_logging_creates_log_file(tmp_path):
    path = tmp_path / "logs" / "run.log"
    setup_logging(logging.DEBUG, path)
    logging.getLogger("aim_assist.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in path.read_text(encoding="utf-8")
    setup_logging(logging.WARNING)
