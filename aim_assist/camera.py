# camera.py
"""VideoCapture wrapper with a background grab thread and a one-frame buffer."""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np

from aim_assist.config import CameraConfig

logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Holds at most one frame. A new frame replaces an unconsumed one; the
    semaphore is released only when the slot goes from empty to full, so a
    waiting reader is woken once per available frame.
    """
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._signal = threading.Semaphore(0)
        self._frame: Optional[np.ndarray] = None
        self._stamp = 0.0
        self.dropped = 0

    def put(self, frame: np.ndarray, stamp: float) -> None:
        with self._lock:
            was_empty = self._frame is None
            if not was_empty:
                self.dropped += 1
            self._frame = frame
            self._stamp = stamp
        if was_empty:
            self._signal.release()

    def get(self, timeout: Optional[float] = None) -> Tuple[float, Optional[np.ndarray]]:
        if not self._signal.acquire(timeout=timeout):
            return time.time(), None
        with self._lock:
            frame, stamp = self._frame, self._stamp
            self._frame = None
        return stamp, frame


class Camera:
    def __init__(self, config: CameraConfig) -> None:
        self.config = config
        self.cap: Optional[cv2.VideoCapture] = None
        self.buffer = FrameBuffer()

        self._grabbing = False
        self._thread: Optional[threading.Thread] = None

        # Exposed runtime-queryable values
        self.actual_width: int = 0
        self.actual_height: int = 0
        self.actual_fps: float = 0.0
        self.vertical_fov_deg: float = 0.0

    # ------------------------------------------------------------------ #
    #   I N T E R N A L   H E L P E R S
    # ------------------------------------------------------------------ #
    def _calculate_vertical_fov(self) -> None:
        if (
            self.actual_width > 0
            and self.actual_height > 0
            and self.config.horizontal_fov_deg > 0
        ):
            hfov_rad = math.radians(self.config.horizontal_fov_deg)
            self.vertical_fov_deg = math.degrees(
                2
                * math.atan(
                    (self.actual_height / self.actual_width)
                    * math.tan(hfov_rad / 2.0)
                )
            )
        else:
            self.vertical_fov_deg = 0.0

    def _grab_loop(self) -> None:
        logger.debug("[GrabThread] Started.")
        while self._grabbing:
            ts, frame = self.read()
            if frame is None:
                if isinstance(self.config.source, str):
                    logger.info("[GrabThread] End of video.")
                    break
                time.sleep(0.005)
                continue
            self.buffer.put(frame, ts)
        self._grabbing = False
        logger.debug("[GrabThread] Stopped.")

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def open(self) -> bool:
        """Open the device (or video file) and apply resolution/fps/controls."""
        src = self.config.source
        if isinstance(src, int):
            backend = cv2.CAP_V4L2 if self.config.use_v4l2 else cv2.CAP_ANY
            self.cap = cv2.VideoCapture(src, backend)
        else:
            self.cap = cv2.VideoCapture(src)
        if not self.cap or not self.cap.isOpened():
            logger.error("Could not open source %s", src)
            self.cap = None
            return False

        if isinstance(src, int):
            if self.config.fourcc_str:
                self.cap.set(
                    cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*self.config.fourcc_str)
                )
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            if self.config.fps_request > 0:
                self.cap.set(cv2.CAP_PROP_FPS, self.config.fps_request)
            # exposure mode must come before the absolute exposure
            if self.config.auto_exposure is not None:
                self.cap.set(cv2.CAP_PROP_AUTO_EXPOSURE, self.config.auto_exposure)
            if self.config.exposure_time_absolute is not None:
                self.cap.set(cv2.CAP_PROP_EXPOSURE, self.config.exposure_time_absolute)
            if self.config.gain is not None:
                self.cap.set(cv2.CAP_PROP_GAIN, self.config.gain)
            time.sleep(0.1)  # Let driver settle

        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)
        self._calculate_vertical_fov()

        logger.info(
            "%dx%d@%.1f FPS (VFOV=%.1f °)",
            self.actual_width, self.actual_height, self.actual_fps, self.vertical_fov_deg,
        )
        if self.actual_width == 0 or self.actual_height == 0:
            logger.error("Camera returned zero resolution")
            self.release()
            return False
        return True

    def read(self) -> Tuple[float, Optional[np.ndarray]]:
        if not self.is_opened():
            return time.time(), None
        ts = time.time()
        ret, frame = self.cap.read()
        return (ts, frame) if ret and frame is not None else (ts, None)

    def start(self) -> bool:
        """Open if needed and start the grab thread."""
        if self._grabbing:
            return True
        if not self.is_opened() and not self.open():
            return False
        self._grabbing = True
        self._thread = threading.Thread(target=self._grab_loop, name="GrabThread", daemon=True)
        self._thread.start()
        return True

    def get_frame(self, timeout: Optional[float] = None) -> Tuple[float, Optional[np.ndarray]]:
        """Block until the grab thread hands over a frame, or ``timeout``."""
        if timeout is None:
            timeout = self.config.frame_timeout_s
        return self.buffer.get(timeout)

    @property
    def grabbing(self) -> bool:
        return self._grabbing

    def stop(self) -> None:
        self._grabbing = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def release(self) -> None:
        self.stop()
        if self.cap:
            logger.info("Releasing capture device")
            self.cap.release()
            self.cap = None

    def __enter__(self) -> "Camera":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
