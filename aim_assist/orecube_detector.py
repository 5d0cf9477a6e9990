# orecube_detector.py
"""HSV-band ore cube detector."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import cv2
import numpy as np

from aim_assist.common import OreCube
from aim_assist.config import OreCubeDetectorParams
from aim_assist.detector import Detector, DetectorKind, register
from aim_assist.helpers import Stopwatch, draw_label, draw_object

logger = logging.getLogger(__name__)


@register(DetectorKind.ORE_CUBE)
class OreCubeDetector(Detector[OreCube, OreCubeDetectorParams]):
    params_cls = OreCubeDetectorParams

    def __init__(self, params=None, **kwargs):
        super().__init__(params, **kwargs)
        self.contours: Sequence[np.ndarray] = ()
        self.contours_poly: List[np.ndarray] = []
        self._timer = Stopwatch()

    def _check_orecube(self, contour: np.ndarray) -> Optional[OreCube]:
        area = cv2.contourArea(contour)
        if not self.params.area_low_th <= area <= self.params.area_high_th:
            return None
        return OreCube.from_rect(cv2.minAreaRect(contour))

    def detect(self, frame: np.ndarray) -> List[OreCube]:
        self.targets, self.contours, self.contours_poly = [], (), []
        if frame is None or frame.size == 0:
            return self.targets

        self.frame_size = (frame.shape[1], frame.shape[0])
        p = self.params
        with self._timer:
            hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
            mask = cv2.inRange(
                hsv,
                np.array([p.hue_low_th, p.saturation_low_th, p.value_low_th]),
                np.array([p.hue_high_th, p.saturation_high_th, p.value_high_th]),
            )
            _, mask = cv2.threshold(mask, p.binary_th, 255.0, cv2.THRESH_BINARY)
            self.contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
            self.contours_poly = [cv2.approxPolyDP(c, 1.0, True) for c in self.contours]

            cubes = self._pool.map(self._check_orecube, self.contours)
            self.targets = sorted(
                (c for c in cubes if c is not None), key=lambda c: (c.center[1], c.center[0])
            )
        logger.debug("Find %d ore cube.", len(self.targets))
        return self.targets

    def visualize_result(self, output: np.ndarray, verbose: int = 1) -> None:
        if verbose <= 0:
            return
        pal = self.palette
        if verbose > 1 and self.contours:
            cv2.drawContours(output, list(self.contours), -1, pal.blue, 3)
            cv2.drawContours(output, self.contours_poly, -1, pal.red, 3)
        if verbose > 2:
            label = f"{len(self.targets)} cubes in {self._timer.ms:.1f} ms."
            draw_label(output, label, 1, pal.black)
        for cube in self.targets:
            draw_object(output, cube, pal.blue, verbose > 2)
