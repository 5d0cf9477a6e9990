# classifier.py
"""OpenCV-DNN adapter that labels an armor's digit from its rectified face."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np

from aim_assist.common import Armor

logger = logging.getLogger(__name__)


class ArmorClassifier:
    def __init__(self, input_size: Tuple[int, int] = (28, 28)):
        self.input_size = input_size
        self.net: Optional[cv2.dnn.Net] = None
        self.labels: List[str] = []

    def load_model(self, path: str | Path) -> None:
        self.net = cv2.dnn.readNetFromONNX(str(path))
        logger.debug("Model loaded from %s", path)

    def load_label(self, path: str | Path) -> None:
        with Path(path).open("r", encoding="utf-8") as fp:
            self.labels = [line.strip() for line in fp if line.strip()]
        logger.debug("Loaded %d labels", len(self.labels))

    def set_input_size(self, size: Tuple[int, int]) -> None:
        self.input_size = (int(size[0]), int(size[1]))

    def classify(self, armor: Armor, frame: np.ndarray) -> Armor:
        if self.net is None or armor.is_empty:
            return armor
        face = armor.face(frame)
        if face.size == 0:
            return armor
        face = cv2.resize(face, self.input_size)
        blob = cv2.dnn.blobFromImage(face, 1.0 / 255.0)
        self.net.setInput(blob)
        scores = self.net.forward().flatten()
        idx = int(np.argmax(scores))
        label = self.labels[idx] if idx < len(self.labels) else str(idx)
        return armor.with_label(label)
