# armor_detector.py
"""Light-bar armor detector used by the plate and snipe strategies."""
from __future__ import annotations

import logging
import math
from typing import List, NamedTuple, Optional, Sequence

import cv2
import numpy as np

from aim_assist.common import Armor, Team
from aim_assist.config import ArmorDetectorParams
from aim_assist.detector import Detector, DetectorKind, register
from aim_assist.helpers import Stopwatch, draw_label, draw_object

logger = logging.getLogger(__name__)


class LightBar(NamedTuple):
    center: np.ndarray
    top: np.ndarray
    bottom: np.ndarray
    length: float
    width: float
    tilt: float  # deg from vertical, signed


@register(DetectorKind.ARMOR, DetectorKind.SNIPE)
class ArmorDetector(Detector[Armor, ArmorDetectorParams]):
    params_cls = ArmorDetectorParams

    def __init__(self, params=None, enemy_team: Team = Team.UNKNOWN, **kwargs):
        super().__init__(params, **kwargs)
        self.enemy_team = enemy_team
        self.contours: Sequence[np.ndarray] = ()
        self.light_bars: List[LightBar] = []
        self._bars_timer = Stopwatch()
        self._armors_timer = Stopwatch()

    def set_enemy_team(self, enemy_team: Team) -> None:
        self.enemy_team = enemy_team

    # ------------------------------------------------------------------ #
    #   L I G H T   B A R S
    # ------------------------------------------------------------------ #
    def _match_light_bar(self, contour: np.ndarray) -> Optional[LightBar]:
        p = self.params
        if len(contour) < p.contour_size_low_th:
            return None
        if cv2.contourArea(contour) < p.bar_area_low_th:
            return None

        pts = cv2.boxPoints(cv2.minAreaRect(contour))
        pts = pts[np.argsort(pts[:, 1])]
        top = pts[:2].mean(axis=0)
        bottom = pts[2:].mean(axis=0)
        length = float(np.linalg.norm(top - bottom))
        width = float(np.linalg.norm(pts[0] - pts[1]))
        if width <= 0:
            return None

        ratio = length / width
        if not p.bar_ratio_low_th <= ratio <= p.bar_ratio_high_th:
            return None
        dx, dy = top - bottom
        tilt = math.degrees(math.atan2(float(dx), float(-dy)))
        if abs(tilt) > p.bar_angle_high_th:
            return None
        return LightBar((top + bottom) / 2.0, top, bottom, length, width, tilt)

    def _find_light_bars(self, frame: np.ndarray) -> None:
        b, _, r = cv2.split(frame)
        img = cv2.subtract(b, r) if self.enemy_team == Team.BLUE else cv2.subtract(r, b)
        _, img = cv2.threshold(img, self.params.binary_th, 255.0, cv2.THRESH_BINARY)
        k = self.params.se_erosion
        if k > 0:
            kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (2 * k + 1, 2 * k + 1))
            img = cv2.dilate(img, kernel)

        self.contours, _ = cv2.findContours(img, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
        bars = self._pool.map(self._match_light_bar, self.contours)
        self.light_bars = sorted(
            (bar for bar in bars if bar is not None), key=lambda bar: float(bar.center[0])
        )
        logger.debug("Found light bars: %d", len(self.light_bars))

    # ------------------------------------------------------------------ #
    #   P A I R I N G
    # ------------------------------------------------------------------ #
    def _pair_score(self, left: LightBar, right: LightBar) -> Optional[float]:
        """Spacing ratio of a valid pair, ``None`` when the bars do not match."""
        p = self.params
        if abs(left.tilt - right.tilt) > p.pair_angle_diff_high_th:
            return None
        if min(left.length, right.length) / max(left.length, right.length) < p.pair_length_ratio_low_th:
            return None
        mean_len = (left.length + right.length) / 2.0
        if abs(float(left.center[1] - right.center[1])) / mean_len > p.pair_center_y_ratio_high_th:
            return None
        spacing = float(np.linalg.norm(left.center - right.center)) / mean_len
        if not p.armor_ratio_low_th <= spacing <= p.armor_ratio_high_th:
            return None
        return spacing

    def _match_armors(self) -> None:
        bars = self.light_bars
        pairs = []
        for i in range(len(bars)):
            for j in range(i + 1, len(bars)):
                score = self._pair_score(bars[i], bars[j])
                if score is not None:
                    pairs.append((score, i, j))

        used = set()
        armors = []
        for _, i, j in sorted(pairs):
            if i in used or j in used:
                continue
            used.update((i, j))
            left, right = bars[i], bars[j]
            armors.append(
                Armor.from_vertices([left.bottom, left.top, right.top, right.bottom])
            )
        self.targets = armors

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def detect(self, frame: np.ndarray) -> List[Armor]:
        self.targets, self.light_bars, self.contours = [], [], ()
        if frame is None or frame.size == 0:
            return self.targets

        self.frame_size = (frame.shape[1], frame.shape[0])
        with self._bars_timer:
            self._find_light_bars(frame)
        with self._armors_timer:
            self._match_armors()
        logger.debug("Detected %d armors", len(self.targets))
        return self.targets

    def visualize_result(self, output: np.ndarray, verbose: int = 1) -> None:
        if verbose <= 0:
            return
        pal = self.palette
        if verbose > 10 and self.contours:
            cv2.drawContours(output, list(self.contours), -1, pal.yellow)
        if verbose > 3:
            for bar in self.light_bars:
                p0 = tuple(int(v) for v in bar.top)
                p1 = tuple(int(v) for v in bar.bottom)
                cv2.line(output, p0, p1, pal.blue, 2)
        if verbose > 1:
            draw_label(output, f"{len(self.light_bars)} bars in {self._bars_timer.ms:.1f} ms.", 1, pal.green)
            draw_label(output, f"{len(self.targets)} armors in {self._armors_timer.ms:.1f} ms.", 2, pal.green)
        for armor in self.targets:
            draw_object(output, armor, pal.green, verbose > 2)
            if armor.label and verbose > 2:
                x, y = armor.vertices[2]
                cv2.putText(output, armor.label, (int(x), int(y)), cv2.FONT_HERSHEY_SIMPLEX, 0.8, pal.green)
