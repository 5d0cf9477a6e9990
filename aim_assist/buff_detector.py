# buff_detector.py
"""
Rotating-buff detector.

The enemy-coloured glow is isolated by channel difference, binarised and
closed, then every contour is measured and sorted into the rotation center,
the hammer icon, or an armor-plate candidate. The active target is the
candidate nearest to the hammer.
"""
from __future__ import annotations

import logging
import math
from typing import List, NamedTuple, Optional, Sequence

import cv2
import numpy as np

from aim_assist.common import ORIGIN, Armor, Buff, RotatedRect, Team
from aim_assist.config import BuffDetectorParams
from aim_assist.detector import Detector, DetectorKind, register
from aim_assist.helpers import FONT, Stopwatch, draw_object

logger = logging.getLogger(__name__)

# Ratios against the center plate's rectangle area
HAMMER_FILL_RATIO = 1.2
HAMMER_AREA_LOW, HAMMER_AREA_HIGH = 20.0, 80.0
HAMMER_CONTOUR_GUARD = 1.5
HAMMER_RECT_GUARD = 0.7
ARMOR_AREA_LOW, ARMOR_AREA_HIGH = 3.0, 15.0
ARMOR_FILL_TOLERANCE = 0.2


class _Shape(NamedTuple):
    rect: RotatedRect
    contour_area: float
    rect_area: float
    ratio: float

    @property
    def sort_key(self):
        (cx, cy), _, _ = self.rect
        return (cy, cx)


def _rect_area(rect: Optional[RotatedRect]) -> float:
    if rect is None:
        return 0.0
    w, h = rect[1]
    return float(w) * float(h)


@register(DetectorKind.BUFF)
class BuffDetector(Detector[Buff, BuffDetectorParams]):
    params_cls = BuffDetectorParams

    def __init__(self, params=None, enemy_team: Team = Team.UNKNOWN, **kwargs):
        super().__init__(params, **kwargs)
        self.team = Team.UNKNOWN
        self.set_team(enemy_team)

        self.buff = Buff.empty()
        self.contours: Sequence[np.ndarray] = ()
        self.contours_poly: List[np.ndarray] = []
        self.rects: List[RotatedRect] = []
        self.hammer: Optional[RotatedRect] = None
        self.center_rect_area = 0.0
        self._center = ORIGIN

        self._rects_timer = Stopwatch()
        self._armors_timer = Stopwatch()

    def set_team(self, enemy_team: Team) -> None:
        self.team = enemy_team

    # ------------------------------------------------------------------ #
    #   C L A S S I F I C A T I O N   T E S T S
    # ------------------------------------------------------------------ #
    def _measure(self, contour: np.ndarray) -> Optional[_Shape]:
        if len(contour) < self.params.contour_size_low_th:
            return None
        rect = cv2.minAreaRect(contour)
        w, h = rect[1]
        return _Shape(
            rect=rect,
            contour_area=float(cv2.contourArea(contour)),
            rect_area=float(w) * float(h),
            ratio=float(w) / float(h) if h > 0 else 0.0,
        )

    def _is_center(self, s: _Shape) -> bool:
        p = self.params
        return (
            p.contour_center_area_low_th <= s.contour_area <= p.contour_center_area_high_th
            and p.rect_center_ratio_low_th <= s.ratio <= p.rect_center_ratio_high_th
        )

    def _is_hammer(self, s: _Shape, center_area: float) -> bool:
        return (
            s.rect_area > HAMMER_FILL_RATIO * s.contour_area
            and HAMMER_AREA_LOW * center_area <= s.rect_area <= HAMMER_AREA_HIGH * center_area
        )

    def _is_armor(self, s: _Shape, center_area: float, hammer_area: float) -> bool:
        p = self.params
        if hammer_area > 0:
            # The hammer's own sub-contours
            if s.contour_area > HAMMER_CONTOUR_GUARD * hammer_area:
                return False
            if s.rect_area > HAMMER_RECT_GUARD * hammer_area:
                return False
        if not p.rect_ratio_low_th <= s.ratio <= p.rect_ratio_high_th:
            return False
        if not ARMOR_AREA_LOW * center_area <= s.rect_area <= ARMOR_AREA_HIGH * center_area:
            return False
        tol = ARMOR_FILL_TOLERANCE * s.rect_area
        return abs(s.contour_area - s.rect_area) <= tol

    # ------------------------------------------------------------------ #
    #   P I P E L I N E
    # ------------------------------------------------------------------ #
    def _binarize(self, frame: np.ndarray) -> np.ndarray:
        b, _, r = cv2.split(frame)
        img = cv2.subtract(b, r) if self.team == Team.BLUE else cv2.subtract(r, b)
        _, img = cv2.threshold(img, self.params.binary_th, 255.0, cv2.THRESH_BINARY)

        k = self.params.se_erosion
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (2 * k + 1, 2 * k + 1), (k, k))
        img = cv2.dilate(img, kernel)
        return cv2.morphologyEx(img, cv2.MORPH_CLOSE, kernel)

    def _find_rects(self, frame: np.ndarray) -> None:
        self.rects = []
        self.hammer = None
        self.center_rect_area = self.params.contour_center_area_low_th * 1.5
        center = ORIGIN

        img = self._binarize(frame)
        self.contours, _ = cv2.findContours(img, cv2.RETR_TREE, cv2.CHAIN_APPROX_NONE)
        self.contours_poly = [
            cv2.approxPolyDP(c, self.params.ap_erosion, True) for c in self.contours
        ]
        logger.debug("Found contours: %d", len(self.contours))

        shapes = [s for s in self._pool.map(self._measure, self.contours) if s is not None]

        # First match wins per contour: center-band contours leave the pool
        centers = [s for s in shapes if self._is_center(s)]
        shapes = [s for s in shapes if not self._is_center(s)]
        if centers:
            best = max(centers, key=lambda s: (s.rect_area, s.sort_key))
            center = (float(best.rect[0][0]), float(best.rect[0][1]))
            self.center_rect_area = best.rect_area
            logger.debug("center's area is %.1f", best.rect_area)

        hammers = [s for s in shapes if self._is_hammer(s, self.center_rect_area)]
        shapes = [s for s in shapes if not self._is_hammer(s, self.center_rect_area)]
        if hammers:
            self.hammer = max(hammers, key=lambda s: (s.rect_area, s.sort_key)).rect
            logger.debug("hammer's area is %.1f", _rect_area(self.hammer))

        hammer_area = _rect_area(self.hammer)
        keep = self._pool.map(
            lambda s: self._is_armor(s, self.center_rect_area, hammer_area), shapes
        )
        armors = sorted((s for s, ok in zip(shapes, keep) if ok), key=lambda s: s.sort_key)
        self.rects = [s.rect for s in armors]
        self._center = center

    def _match_armors(self) -> None:
        armors = tuple(Armor.from_rect(rect) for rect in self.rects)
        target = Armor.empty()
        if armors and _rect_area(self.hammer) > 0:
            hx, hy = self.hammer[0]
            target = min(
                armors,
                key=lambda a: (math.hypot(a.center[0] - hx, a.center[1] - hy), a.center[1], a.center[0]),
            )
        else:
            logger.debug("can't find buff armor")
        self.buff = Buff(center=self._center, hammer=self.hammer, armors=armors, target=target)
        logger.debug("armors.size is %d", len(armors))

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def detect(self, frame: np.ndarray) -> List[Buff]:
        self.contours, self.contours_poly, self.rects, self.hammer = (), [], [], None
        if frame is None or frame.size == 0:
            self.buff = Buff.empty()
            self.targets = [self.buff]
            return self.targets

        self.frame_size = (frame.shape[1], frame.shape[0])
        with self._rects_timer:
            self._find_rects(frame)
        with self._armors_timer:
            self._match_armors()
        self.targets = [self.buff]
        return self.targets

    def visualize_result(self, output: np.ndarray, verbose: int = 1) -> None:
        if verbose <= 0:
            return
        pal = self.palette
        if verbose > 10 and self.contours:
            cv2.drawContours(output, list(self.contours), -1, pal.red)
            cv2.drawContours(output, self.contours_poly, -1, pal.yellow)

        if verbose > 1:
            v_pos = 0
            for label in (
                f"{len(self.buff.armors)} armors in {self._armors_timer.ms:.1f} ms.",
                f"{len(self.rects)} rects in {self._rects_timer.ms:.1f} ms.",
            ):
                (_, text_h), _ = cv2.getTextSize(label, FONT, 1.0, 2)
                v_pos += int(1.3 * text_h)
                cv2.putText(output, label, (0, v_pos), FONT, 1.0, pal.green)

        if verbose > 3:
            if self.hammer is not None:
                pts = cv2.boxPoints(self.hammer).astype(np.int32)
                cv2.polylines(output, [pts], True, pal.red)
            cx, cy = self.buff.center
            cv2.drawMarker(output, (int(cx), int(cy)), pal.red, cv2.MARKER_DIAMOND)

        target = self.buff.target
        for armor in self.buff.armors:
            if armor is not target:
                draw_object(output, armor, pal.green, verbose > 2)
        if not target.is_empty:
            draw_object(output, target, pal.red, verbose > 2)
