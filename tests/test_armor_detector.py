"""Tests for light-bar pairing on synthetic frames."""
from __future__ import annotations

import pytest

from conftest import RED, draw_light_bars
from aim_assist.armor_detector import ArmorDetector
from aim_assist.common import Team
from aim_assist.config import ArmorDetectorParams
from aim_assist.detector import DETECTORS, DetectorKind


@pytest.fixture
def detector():
    det = ArmorDetector(enemy_team=Team.BLUE)
    yield det
    det.close()


class TestArmorDetector:
    def test_pair_becomes_armor(self, detector):
        armors = detector.detect(draw_light_bars())
        assert len(detector.light_bars) == 2
        assert len(armors) == 1
        assert armors[0].center == pytest.approx((320.0, 225.0), abs=1.5)
        assert armors[0].aspect_ratio > 1.0

    def test_red_enemy(self):
        with ArmorDetector(enemy_team=Team.RED) as det:
            armors = det.detect(draw_light_bars(color=RED))
        assert len(armors) == 1

    def test_single_bar_is_not_an_armor(self, detector):
        assert detector.detect(draw_light_bars(xs=(280,))) == []
        assert len(detector.light_bars) == 1

    def test_bars_too_far_apart(self, detector):
        assert detector.detect(draw_light_bars(xs=(100, 500))) == []

    def test_black_frame(self, detector, black_frame):
        assert detector.detect(black_frame) == []

    def test_wrong_team_sees_nothing(self):
        with ArmorDetector(enemy_team=Team.RED) as det:
            assert det.detect(draw_light_bars()) == []

    def test_two_armors(self, detector):
        armors = detector.detect(draw_light_bars(xs=(100, 180, 460, 540)))
        assert len(armors) == 2
        xs = sorted(a.center[0] for a in armors)
        assert xs == pytest.approx([140.0, 500.0], abs=1.5)

    def test_bar_ratio_threshold(self):
        params = ArmorDetectorParams(bar_ratio_low_th=6.0)
        with ArmorDetector(params, enemy_team=Team.BLUE) as det:
            assert det.detect(draw_light_bars()) == []


def test_registry_maps_both_kinds():
    assert DETECTORS[DetectorKind.ARMOR] is ArmorDetector
    assert DETECTORS[DetectorKind.SNIPE] is ArmorDetector
