# helpers.py
"""Small utility classes that don’t fit elsewhere."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from aim_assist.common import ImageObject

Color = Tuple[int, int, int]  # BGR

FONT = cv2.FONT_HERSHEY_SIMPLEX


@dataclass(frozen=True)
class Palette:
    blue: Color = (255, 0, 0)
    green: Color = (0, 255, 0)
    red: Color = (0, 0, 255)
    yellow: Color = (0, 255, 255)
    black: Color = (0, 0, 0)


class Stopwatch:
    """
    Measures wall time of a ``with`` block in milliseconds.
    The last measurement stays readable in ``ms``.
    """
    def __init__(self) -> None:
        self.ms = 0.0
        self._start = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.ms = (time.perf_counter() - self._start) * 1000.0


def draw_label(output: np.ndarray, label: str, level: int, color: Color) -> None:
    """Write ``label`` on text row ``level`` (negative rows count from 20)."""
    while level < 0:
        level += 20
    cv2.putText(output, label, (0, 24 * level), FONT, 1.0, color)


def draw_object(
    output: np.ndarray,
    obj: ImageObject,
    color: Color,
    add_label: bool = False,
    thickness: int = 1,
) -> None:
    pts = obj.vertices.astype(np.int32).reshape(-1, 1, 2)
    cv2.polylines(output, [pts], True, color, thickness)
    cx, cy = obj.center
    cv2.drawMarker(output, (int(cx), int(cy)), color, cv2.MARKER_DIAMOND)
    if add_label:
        x, y = obj.vertices[1]
        cv2.putText(output, f"{cx:.2f}, {cy:.2f}", (int(x), int(y)), FONT, 1.0, color)
