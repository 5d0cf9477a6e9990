# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

Point = Tuple[float, float]
# OpenCV rotated rectangle: ((cx, cy), (w, h), angle_deg)
RotatedRect = Tuple[Point, Tuple[float, float], float]

ORIGIN: Point = (0.0, 0.0)


class Team(Enum):
    UNKNOWN = auto()
    RED = auto()
    BLUE = auto()


class Arm(Enum):
    UNKNOWN = auto()
    HERO = auto()
    ENGINEER = auto()
    INFANTRY = auto()
    SENTRY = auto()


class RFID(Enum):
    UNKNOWN = auto()
    SNIPE = auto()
    BUFF = auto()


class Direction(Enum):
    UNKNOWN = auto()
    CW = auto()
    CCW = auto()


class AimMethod(Enum):
    UNKNOWN = auto()
    ARMOR = auto()
    BUFF = auto()
    SNIPE = auto()


class FilterMethod(Enum):
    UNKNOWN = auto()
    KF = auto()
    EKF = auto()


def is_origin(p: Sequence[float]) -> bool:
    return float(p[0]) == 0.0 and float(p[1]) == 0.0


def rotate_points(points: np.ndarray, theta: float, center: Point) -> np.ndarray:
    """Rotate ``points`` (Nx2) by ``theta`` radians about ``center``."""
    c, s = math.cos(theta), math.sin(theta)
    rot = np.array([[c, -s], [s, c]], dtype=np.float64)
    ctr = np.asarray(center, dtype=np.float64)
    rel = np.asarray(points, dtype=np.float64) - ctr
    return rel @ rot.T + ctr


@dataclass(frozen=True, eq=False)
class ImageObject:
    """
    A quadrilateral in image space.

    ``vertices`` keep the winding of ``cv2.boxPoints`` and ``center`` is
    their centroid. ``transform`` maps the quadrilateral onto an upright
    ``face_size`` patch (see :meth:`face`).
    """
    vertices: np.ndarray
    center: Point
    angle: float
    aspect_ratio: float
    face_size: Tuple[int, int]
    transform: np.ndarray = field(repr=False)

    # ------------------------------------------------------------------ #
    #   C O N S T R U C T O R S
    # ------------------------------------------------------------------ #
    @classmethod
    def from_vertices(cls, vertices, **extra):
        pts = np.asarray(vertices, dtype=np.float32).reshape(4, 2)
        cx, cy = pts.mean(axis=0)
        width = float(np.linalg.norm(pts[2] - pts[1]))
        height = float(np.linalg.norm(pts[1] - pts[0]))
        dx, dy = pts[2] - pts[1]
        angle = math.degrees(math.atan2(float(dy), float(dx)))
        ratio = width / height if height > 0 else 0.0

        if width < 1.0 or height < 1.0:
            face_size = (0, 0)
            trans = np.eye(3)
        else:
            face_size = (int(round(width)), int(round(height)))
            w, h = face_size
            dst = np.array(
                [[0, h - 1], [0, 0], [w - 1, 0], [w - 1, h - 1]], dtype=np.float32
            )
            trans = cv2.getPerspectiveTransform(pts, dst)

        return cls(
            vertices=pts,
            center=(float(cx), float(cy)),
            angle=angle,
            aspect_ratio=ratio,
            face_size=face_size,
            transform=trans,
            **extra,
        )

    @classmethod
    def from_rect(cls, rect: RotatedRect, **extra):
        obj = cls.from_vertices(cv2.boxPoints(rect), **extra)
        (w, h), angle = rect[1], rect[2]
        return replace(
            obj,
            center=(float(rect[0][0]), float(rect[0][1])),
            angle=float(angle),
            aspect_ratio=float(w) / float(h) if h > 0 else 0.0,
        )

    @classmethod
    def from_points(cls, p0, p1, p2, **extra):
        """Rebuild a rectangle from three consecutive corners."""
        p0, p1, p2 = (np.asarray(p, dtype=np.float64) for p in (p0, p1, p2))
        p3 = p0 + p2 - p1
        return cls.from_vertices(np.stack([p0, p1, p2, p3]), **extra)

    @classmethod
    def empty(cls, **extra):
        return cls(
            vertices=np.zeros((4, 2), dtype=np.float32),
            center=ORIGIN,
            angle=0.0,
            aspect_ratio=0.0,
            face_size=(0, 0),
            transform=np.eye(3),
            **extra,
        )

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    @property
    def is_empty(self) -> bool:
        return is_origin(self.center)

    def face(self, frame: np.ndarray) -> np.ndarray:
        """Rectified, binarised square patch of the object."""
        if self.face_size == (0, 0):
            return np.zeros((0, 0), dtype=np.uint8)
        face = cv2.warpPerspective(frame, self.transform, self.face_size)
        if face.ndim == 3:
            face = cv2.cvtColor(face, cv2.COLOR_BGR2GRAY)
        _, face = cv2.threshold(
            face, 0.0, 255.0, cv2.THRESH_BINARY | cv2.THRESH_TRIANGLE
        )
        # Keep the centered square
        rows, cols = face.shape[:2]
        edge = min(rows, cols)
        off_w = (cols - edge) // 2
        off_h = (rows - edge) // 2
        return face[off_h:off_h + edge, off_w:off_w + edge]

    def rotated(self, theta: float, center: Point):
        """
        Rotate by ``theta`` radians about ``center``.

        Only the three leading vertices are rotated; a rigid rotation keeps
        the rectangle, so the fourth corner is rebuilt from them.
        """
        pts = rotate_points(self.vertices[:3], theta, center)
        return self._rebuild(self.from_points(*pts))

    def translated(self, dx: float, dy: float):
        moved = self.vertices.astype(np.float64) + np.array([dx, dy])
        return self._rebuild(self.from_vertices(moved))

    def _rebuild(self, geometry: "ImageObject"):
        return replace(
            self,
            vertices=geometry.vertices,
            center=geometry.center,
            angle=geometry.angle,
            aspect_ratio=geometry.aspect_ratio,
            face_size=geometry.face_size,
            transform=geometry.transform,
        )


@dataclass(frozen=True, eq=False)
class Armor(ImageObject):
    label: Optional[str] = None

    def with_label(self, label: Optional[str]) -> "Armor":
        return replace(self, label=label)


@dataclass(frozen=True, eq=False)
class OreCube(ImageObject):
    pass


@dataclass(frozen=True, eq=False)
class Buff:
    """
    One frame's view of the rotating target.

    ``target`` is the candidate nearest to the hammer, or the empty armor
    when there is no hammer or no candidate.
    """
    center: Point
    hammer: Optional[RotatedRect]
    armors: Tuple[Armor, ...]
    target: Armor

    @classmethod
    def empty(cls) -> "Buff":
        return cls(center=ORIGIN, hammer=None, armors=(), target=Armor.empty())

    @property
    def has_center(self) -> bool:
        return not is_origin(self.center)
