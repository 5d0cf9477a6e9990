"""Tests for the image-space target types."""
from __future__ import annotations

import math

import numpy as np
import pytest

from aim_assist.common import Armor, Buff, OreCube, rotate_points


def _armor(center=(320.0, 240.0), size=(40.0, 20.0), angle=0.0) -> Armor:
    return Armor.from_rect((center, size, angle))


class TestImageObject:
    def test_center_is_vertex_centroid(self):
        armor = _armor(angle=30.0)
        cx, cy = armor.vertices.mean(axis=0)
        assert armor.center == pytest.approx((cx, cy), abs=1e-3)

    def test_from_rect_keeps_size(self):
        armor = _armor()
        assert armor.aspect_ratio == pytest.approx(2.0)
        assert armor.face_size == (40, 20)

    def test_from_points_rebuilds_fourth_corner(self):
        armor = _armor(angle=15.0)
        rebuilt = Armor.from_points(*armor.vertices[:3])
        assert np.allclose(rebuilt.vertices, armor.vertices, atol=1e-3)

    def test_empty_sentinel(self):
        armor = Armor.empty()
        assert armor.is_empty
        assert armor.center == (0.0, 0.0)
        assert armor.face(np.zeros((10, 10, 3), np.uint8)).size == 0
        assert not _armor().is_empty

    def test_translated(self):
        moved = _armor().translated(10.0, -5.0)
        assert moved.center == pytest.approx((330.0, 235.0))

    def test_with_label_survives_geometry_changes(self):
        armor = _armor().with_label("3")
        assert armor.translated(1.0, 1.0).label == "3"
        assert armor.rotated(0.5, (0.0, 0.0)).label == "3"

    def test_ore_cube_shares_geometry(self):
        cube = OreCube.from_rect(((100.0, 100.0), (50.0, 50.0), 0.0))
        assert cube.center == pytest.approx((100.0, 100.0))

    def test_face_is_square(self):
        frame = np.zeros((480, 640, 3), np.uint8)
        frame[230:250, 300:340] = 255
        face = _armor().face(frame)
        assert face.shape[0] == face.shape[1] == 20


class TestRotation:
    def test_quarter_turn(self):
        pts = rotate_points(np.array([[1.0, 0.0]]), math.pi / 2, (0.0, 0.0))
        assert pts[0] == pytest.approx([0.0, 1.0], abs=1e-9)

    @pytest.mark.parametrize("theta", [0.1, 1.0, -2.5, math.pi])
    def test_round_trip(self, theta):
        armor = _armor(angle=20.0)
        center = (200.0, 150.0)
        back = armor.rotated(theta, center).rotated(-theta, center)
        assert np.allclose(back.vertices, armor.vertices, atol=1e-3)
        assert back.center == pytest.approx(armor.center, abs=1e-3)

    def test_rotation_keeps_distance_to_center(self):
        armor = _armor()
        center = (100.0, 100.0)
        turned = armor.rotated(0.7, center)
        r0 = math.dist(armor.center, center)
        r1 = math.dist(turned.center, center)
        assert r1 == pytest.approx(r0, rel=1e-5)


class TestBuff:
    def test_empty(self):
        buff = Buff.empty()
        assert not buff.has_center
        assert buff.armors == ()
        assert buff.target.is_empty
