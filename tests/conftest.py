"""Shared fixtures: synthetic frames drawn with OpenCV and a settable clock."""
from __future__ import annotations

import cv2
import numpy as np
import pytest

BLUE = (255, 0, 0)
RED = (0, 0, 255)

# Buff scene, 640x480
CENTER_BOX = ((310, 230), (330, 250))      # 20x20 rotation center
HAMMER_L = [                               # L-shaped hammer icon, bbox 160x160
    ((60, 40), (220, 70)),
    ((60, 40), (90, 200)),
]
ARMOR_BOXES = [
    ((270, 100), (330, 140)),              # nearest to the hammer
    ((470, 360), (530, 400)),
    ((100, 380), (160, 420)),
]
NEAR_ARMOR_CENTER = (300.0, 120.0)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


def draw_buff(color=BLUE, size=(480, 640)) -> np.ndarray:
    frame = np.zeros((*size, 3), dtype=np.uint8)
    cv2.rectangle(frame, *CENTER_BOX, color, -1)
    for p0, p1 in HAMMER_L:
        cv2.rectangle(frame, p0, p1, color, -1)
    for p0, p1 in ARMOR_BOXES:
        cv2.rectangle(frame, p0, p1, color, -1)
    return frame


def draw_light_bars(color=BLUE, xs=(280, 360), top=200, size=(480, 640)) -> np.ndarray:
    frame = np.zeros((*size, 3), dtype=np.uint8)
    for x in xs:
        cv2.rectangle(frame, (x - 5, top), (x + 5, top + 50), color, -1)
    return frame


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def black_frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def buff_frame():
    return draw_buff()
