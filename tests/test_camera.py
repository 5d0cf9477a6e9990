"""Tests for the one-slot frame hand-off."""
from __future__ import annotations

import threading

import numpy as np

from aim_assist.camera import Camera, FrameBuffer
from aim_assist.config import CameraConfig


def _frame(value: int) -> np.ndarray:
    return np.full((4, 4, 3), value, dtype=np.uint8)


class TestFrameBuffer:
    def test_get_returns_put_frame(self):
        buf = FrameBuffer()
        buf.put(_frame(1), 10.0)
        stamp, frame = buf.get(timeout=0.1)
        assert stamp == 10.0
        assert frame[0, 0, 0] == 1

    def test_timeout_without_frame(self):
        stamp, frame = FrameBuffer().get(timeout=0.01)
        assert frame is None

    def test_newer_frame_replaces_unconsumed(self):
        buf = FrameBuffer()
        buf.put(_frame(1), 1.0)
        buf.put(_frame(2), 2.0)
        assert buf.dropped == 1
        stamp, frame = buf.get(timeout=0.1)
        assert (stamp, frame[0, 0, 0]) == (2.0, 2)
        # only one frame was ever available
        assert buf.get(timeout=0.01)[1] is None

    def test_cross_thread_handoff(self):
        buf = FrameBuffer()
        timer = threading.Timer(0.05, buf.put, args=(_frame(7), 3.0))
        timer.start()
        try:
            stamp, frame = buf.get(timeout=2.0)
        finally:
            timer.cancel()
        assert stamp == 3.0
        assert frame[0, 0, 0] == 7


class TestCamera:
    def test_missing_video_file(self, tmp_path):
        camera = Camera(CameraConfig(source=str(tmp_path / "missing.avi")))
        assert not camera.start()
        assert not camera.grabbing
        _, frame = camera.read()
        assert frame is None
        camera.release()
