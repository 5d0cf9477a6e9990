# buff_predictor.py
"""
Rotating-buff pose predictor.

The spin direction is fixed once from five target samples; the target is
then rotated about the buff center by the angle the blade covers during the
system latency, integrated from a sinusoidal angular-speed model.
"""
from __future__ import annotations

import logging
import math
import time
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Optional, Sequence

import cv2
import numpy as np

from aim_assist.common import Armor, Buff, Direction, Point
from aim_assist.config import BuffPredictorParams
from aim_assist.helpers import FONT, Palette, Stopwatch
from aim_assist.logger import LogThrottler
from aim_assist.params import load_params

logger = logging.getLogger(__name__)

SAMPLE_COUNT = 5


def rotated_angle(p: Point, center: Point) -> float:
    """Angle of ``p`` around ``center``, measured with x and y swapped."""
    return math.atan2(p[0] - center[0], p[1] - center[1])


def integral_predicted_angle(t: float, params: BuffPredictorParams) -> float:
    """
    Angle covered in ``params.delay_s`` starting at ``t``, for a speed of
    ``a + b * sin(w * t)``.
    """
    a, b, w = params.speed_offset, params.speed_amplitude, params.angular_frequency
    delta = params.delay_s
    return a * delta + b / w * (math.cos(w * t) - math.cos(w * (t + delta)))


def _wrap(angle: float) -> float:
    return math.atan2(math.sin(angle), math.cos(angle))


class BuffPredictor:
    def __init__(
        self,
        params: Optional[BuffPredictorParams] = None,
        buffs: Sequence[Buff] = (),
        *,
        clock: Callable[[], float] = time.monotonic,
        palette: Optional[Palette] = None,
    ):
        self.params = params or BuffPredictorParams()
        self.palette = palette or Palette()
        self._clock = clock
        self._throttle = LogThrottler(1000, clock=clock)

        self.direction = Direction.UNKNOWN
        self.samples: Deque[Point] = deque(maxlen=SAMPLE_COUNT)
        for buff in buffs:
            if not buff.target.is_empty and len(self.samples) < SAMPLE_COUNT:
                self.samples.append(buff.target.center)
        self.buff = buffs[-1] if buffs else Buff.empty()
        self.num_armors = len(self.buff.armors)

        self.predict_armor = Armor.empty()
        self.theta = 0.0  # last predicted rotation, deg
        self.end_time = 0.0
        self.set_time(0.0)

        self._direction_timer = Stopwatch()
        self._predict_timer = Stopwatch()

    def load_params(self, path: str | Path) -> None:
        self.params = load_params(path, BuffPredictorParams)

    # ------------------------------------------------------------------ #
    #   S T A T E
    # ------------------------------------------------------------------ #
    def set_buff(self, buff: Buff) -> None:
        logger.debug("Buff center is %.1f, %.1f", *buff.center)
        self.buff = buff
        if self.num_armors == 0 and buff.armors:
            self.num_armors = len(buff.armors)

    def set_time(self, elapsed: float) -> None:
        """Deadline at the end of the engagement window, ``elapsed`` s in."""
        duration = self.params.window_s - elapsed
        self.end_time = self._clock() + duration
        logger.debug("duration : %.2f s", duration)

    def get_time(self) -> float:
        return self.end_time - self._clock()

    def reset_time(self) -> bool:
        if len(self.buff.armors) < self.num_armors:
            self.set_time(0.0)
            logger.info("Reset time.")
            return True
        return False

    def reset(self) -> None:
        """Start a new tracking session."""
        self.direction = Direction.UNKNOWN
        self.samples.clear()
        self.predict_armor = Armor.empty()

    # ------------------------------------------------------------------ #
    #   M A T C H I N G
    # ------------------------------------------------------------------ #
    def match_direction(self) -> None:
        if self.direction != Direction.UNKNOWN:
            return
        with self._direction_timer:
            target = self.buff.target
            if not target.is_empty:
                self.samples.append(target.center)
            if len(self.samples) < SAMPLE_COUNT or not self.buff.has_center:
                return

            center = self.buff.center
            angles = [rotated_angle(p, center) for p in self.samples]
            total = sum(_wrap(b - a) for a, b in zip(angles, angles[1:]))
            if total > 0:
                self.direction = Direction.CCW
            elif total < 0:
                self.direction = Direction.CW
            logger.info("Buff's Direction is %s", self.direction.name)

    def match_predict(self) -> None:
        self.predict_armor = Armor.empty()
        if not self.buff.has_center:
            if self._throttle.should_log("center"):
                logger.warning("Center is empty.")
            return
        if self.buff.target.is_empty:
            if self._throttle.should_log("target"):
                logger.warning("Target center is empty.")
            return
        if self.direction == Direction.UNKNOWN:
            return

        with self._predict_timer:
            theta = integral_predicted_angle(self.get_time(), self.params)
            if self.direction == Direction.CW:
                theta = -theta
            self.theta = theta
            logger.debug("Delta theta : %.3f deg", theta)
            self.predict_armor = self.buff.target.rotated(math.radians(theta), self.buff.center)

    def predict(self) -> List[Armor]:
        self.reset_time()
        self.match_direction()
        self.match_predict()
        return [self.predict_armor]

    # ------------------------------------------------------------------ #
    #   D R A W I N G
    # ------------------------------------------------------------------ #
    def visualize_prediction(self, output: np.ndarray, add_label: bool = False) -> None:
        armor = self.predict_armor
        if armor.is_empty:
            return
        pal = self.palette
        pts = armor.vertices.astype(np.int32).reshape(-1, 1, 2)
        cv2.polylines(output, [pts], True, pal.yellow, 8)
        center = tuple(int(v) for v in self.buff.center)
        target = tuple(int(v) for v in armor.center)
        cv2.line(output, center, target, pal.red, 3)
        if not add_label:
            return

        x, y = armor.vertices[1]
        cx, cy = armor.center
        cv2.putText(output, f"{cx:.1f}, {cy:.1f}", (int(x), int(y)), FONT, 1.0, pal.red)
        v_pos = 0
        for label in (
            f"Direction {self.direction.name} in {self._direction_timer.ms:.1f} ms.",
            f"Find predict in {self._predict_timer.ms:.1f} ms.",
        ):
            (_, text_h), _ = cv2.getTextSize(label, FONT, 1.0, 2)
            v_pos += (3 if v_pos == 0 else 1) * int(1.3 * text_h)
            cv2.putText(output, label, (0, v_pos), FONT, 1.0, pal.green)
