# aim_assistant.py
"""Strategy selection and the per-frame detector to predictor glue."""
from __future__ import annotations

import logging
import math
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from aim_assist.armor_detector import ArmorDetector
from aim_assist.armor_predictor import ArmorPredictor
from aim_assist.buff_detector import BuffDetector
from aim_assist.buff_predictor import BuffPredictor
from aim_assist.classifier import ArmorClassifier
from aim_assist.common import RFID, AimMethod, Arm, Armor, Team
from aim_assist.helpers import Palette

logger = logging.getLogger(__name__)

# role -> {tag: method}; a tag missing from a role's row leaves the method as is
_RFID_TABLE = {
    Arm.HERO: {RFID.SNIPE: AimMethod.SNIPE, RFID.UNKNOWN: AimMethod.ARMOR},
    Arm.INFANTRY: {RFID.BUFF: AimMethod.BUFF, RFID.UNKNOWN: AimMethod.ARMOR},
    Arm.SENTRY: {rfid: AimMethod.ARMOR for rfid in RFID},
}


def rank_score(armor: Armor, image_center: Tuple[float, float]) -> float:
    """
    Distance to the image center plus the mean displacement between the
    corners and their rectified, re-centered positions, in pixels. Upright
    armors get no penalty. Lower is better.
    """
    center_dis = math.hypot(armor.center[0] - image_center[0], armor.center[1] - image_center[1])
    corners = armor.vertices.reshape(-1, 2).astype(np.float64)
    warped = cv2.perspectiveTransform(
        corners.reshape(-1, 1, 2), armor.transform.astype(np.float64)
    ).reshape(-1, 2)
    warped += corners.mean(axis=0) - warped.mean(axis=0)
    diff = np.linalg.norm(corners - warped, axis=1)
    return center_dis + float(diff.mean())


class AimAssistant:
    """The main high-level orchestrator."""

    def __init__(
        self,
        arm: Arm = Arm.UNKNOWN,
        enemy_team: Team = Team.UNKNOWN,
        *,
        classifier: Optional[ArmorClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
        palette: Optional[Palette] = None,
        workers: Optional[int] = None,
    ):
        self.arm = arm
        self.method = AimMethod.UNKNOWN
        self.palette = palette or Palette()
        self.classifier = classifier

        # Build sub-systems
        kw = dict(palette=self.palette, workers=workers)
        self.armor_detector = ArmorDetector(enemy_team=enemy_team, **kw)
        self.buff_detector = BuffDetector(enemy_team=enemy_team, **kw)
        self.snipe_detector = ArmorDetector(enemy_team=enemy_team, **kw)
        self.armor_predictor = ArmorPredictor(clock=clock, palette=self.palette)
        self.buff_predictor = BuffPredictor(clock=clock, palette=self.palette)

        self.armors: List[Armor] = []
        logger.debug("Constructed for %s", arm.name)

    # ---------------------------------------------------------------------
    #                         Setup / teardown
    # ---------------------------------------------------------------------
    def load_params(
        self,
        armor_param: str | Path,
        buff_param: str | Path,
        snipe_param: str | Path,
        armor_pre_param: str | Path,
        buff_pre_param: str | Path,
    ) -> None:
        self.armor_detector.load_params(armor_param)
        self.buff_detector.load_params(buff_param)
        self.snipe_detector.load_params(snipe_param)
        self.armor_predictor.load_params(armor_pre_param)
        self.buff_predictor.load_params(buff_pre_param)

    def set_classifier_params(
        self, model_path: str | Path, label_path: str | Path, input_size: Tuple[int, int]
    ) -> None:
        classifier = ArmorClassifier()
        classifier.load_model(model_path)
        classifier.load_label(label_path)
        classifier.set_input_size(input_size)
        self.classifier = classifier

    def close(self) -> None:
        for detector in (self.armor_detector, self.buff_detector, self.snipe_detector):
            detector.close()

    # ---------------------------------------------------------------------
    #                         Robot state
    # ---------------------------------------------------------------------
    def set_enemy_team(self, enemy_team: Team) -> None:
        self.armor_detector.set_enemy_team(enemy_team)
        self.buff_detector.set_team(enemy_team)
        self.snipe_detector.set_enemy_team(enemy_team)

    def set_arm(self, arm: Arm) -> None:
        self.arm = arm
        logger.debug("Arm : %s", arm.name)

    def set_rfid(self, rfid: RFID) -> None:
        if self.arm == Arm.UNKNOWN:
            self.method = AimMethod.UNKNOWN
            return
        self.method = _RFID_TABLE.get(self.arm, {}).get(rfid, self.method)
        logger.info("Now Arms : %s, AimMethod : %s", self.arm.name, self.method.name)

    def set_time(self, elapsed: float) -> None:
        self.buff_predictor.set_time(elapsed)

    # ---------------------------------------------------------------------
    #                         Per-frame
    # ---------------------------------------------------------------------
    def rank(self, frame: np.ndarray, armors: Sequence[Armor]) -> List[Armor]:
        image_center = (frame.shape[1] // 2, frame.shape[0] // 2)
        return sorted(armors, key=lambda a: rank_score(a, image_center))

    def aim(self, frame: np.ndarray) -> List[Armor]:
        if self.method == AimMethod.UNKNOWN:
            self.method = AimMethod.ARMOR

        if self.method == AimMethod.BUFF:
            buffs = self.buff_detector.detect(frame)
            self.buff_predictor.set_buff(buffs[-1])
            self.armors = self.buff_predictor.predict()
            return self.armors

        detector = self.snipe_detector if self.method == AimMethod.SNIPE else self.armor_detector
        armors = detector.detect(frame)
        if self.classifier is not None:
            armors = [self.classifier.classify(armor, frame) for armor in armors]
            detector.targets = armors
        ranked = self.rank(frame, armors)
        self.armor_predictor.set_armor(ranked[0] if ranked else None)
        self.armors = self.armor_predictor.predict()
        return self.armors

    def visualize_result(self, frame: np.ndarray, verbose: int = 1) -> None:
        if verbose <= 0:
            return
        if self.method == AimMethod.ARMOR:
            self.armor_detector.visualize_result(frame, verbose)
            self.armor_predictor.visualize_prediction(frame, verbose > 2)
        elif self.method == AimMethod.BUFF:
            self.buff_detector.visualize_result(frame, verbose)
            self.buff_predictor.visualize_prediction(frame, verbose > 2)
        elif self.method == AimMethod.SNIPE:
            self.snipe_detector.visualize_result(frame, verbose)
            self.armor_predictor.visualize_prediction(frame, verbose > 2)
