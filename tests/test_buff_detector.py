"""Tests for the rotating-buff detector on synthetic scenes."""
from __future__ import annotations

import cv2
import numpy as np
import pytest

from conftest import NEAR_ARMOR_CENTER, RED, draw_buff
from aim_assist import buff_detector
from aim_assist.buff_detector import BuffDetector
from aim_assist.common import Team
from aim_assist.detector import DetectorKind, create_detector


@pytest.fixture
def detector():
    det = BuffDetector(enemy_team=Team.BLUE)
    yield det
    det.close()


class TestEmptyInput:
    def test_black_frame(self, detector, black_frame):
        buffs = detector.detect(black_frame)
        assert len(buffs) == 1
        assert buffs[0].armors == ()
        assert buffs[0].target.is_empty
        assert not buffs[0].has_center

    def test_empty_array(self, detector):
        buffs = detector.detect(np.zeros((0, 0, 3), np.uint8))
        assert buffs[0].target.is_empty

    def test_wrong_team_sees_nothing(self, buff_frame):
        with BuffDetector(enemy_team=Team.RED) as det:
            buff = det.detect(buff_frame)[0]
        assert buff.armors == ()
        assert buff.target.is_empty


class TestClassification:
    def test_scene(self, detector, buff_frame):
        buff = detector.detect(buff_frame)[0]
        assert buff.center == pytest.approx((320.0, 240.0), abs=1.0)
        assert buff.hammer is not None
        assert len(buff.armors) == 3
        assert buff.target.center == pytest.approx(NEAR_ARMOR_CENTER, abs=1.0)
        assert any(a is buff.target for a in buff.armors)

    def test_red_enemy(self):
        with BuffDetector(enemy_team=Team.RED) as det:
            buff = det.detect(draw_buff(color=RED))[0]
        assert buff.target.center == pytest.approx(NEAR_ARMOR_CENTER, abs=1.0)

    def test_repeatable(self, detector, buff_frame):
        first = detector.detect(buff_frame)[0]
        second = detector.detect(buff_frame.copy())[0]
        assert first.center == second.center
        assert first.target.center == second.target.center
        assert [a.center for a in first.armors] == [a.center for a in second.armors]

    def test_independent_of_contour_order(self, detector, buff_frame, monkeypatch):
        expected = detector.detect(buff_frame)[0]

        find_contours = cv2.findContours

        def reversed_contours(*args, **kwargs):
            contours, hierarchy = find_contours(*args, **kwargs)
            return tuple(reversed(contours)), hierarchy

        monkeypatch.setattr(buff_detector.cv2, "findContours", reversed_contours)
        buff = detector.detect(buff_frame)[0]
        assert buff.center == expected.center
        assert buff.target.center == expected.target.center
        assert [a.center for a in buff.armors] == [a.center for a in expected.armors]

    def test_no_hammer_means_no_target(self, detector):
        frame = draw_buff()
        frame[30:215, 50:230] = 0  # wipe the hammer
        buff = detector.detect(frame)[0]
        assert buff.hammer is None
        assert len(buff.armors) == 3
        assert buff.target.is_empty

    def test_frame_is_not_retained(self, detector, buff_frame):
        detector.detect(buff_frame)
        assert all(v is not buff_frame for v in vars(detector).values())


class TestVisualize:
    def test_zero_verbosity_is_noop(self, detector, buff_frame):
        detector.detect(buff_frame)
        out = buff_frame.copy()
        detector.visualize_result(out, 0)
        assert np.array_equal(out, buff_frame)

    def test_draws_on_positive_verbosity(self, detector, buff_frame):
        detector.detect(buff_frame)
        out = buff_frame.copy()
        detector.visualize_result(out, 11)
        assert not np.array_equal(out, buff_frame)


def test_registry_builds_buff_detector(tmp_path):
    det = create_detector(DetectorKind.BUFF, tmp_path / "buff.json", enemy_team=Team.BLUE)
    try:
        assert isinstance(det, BuffDetector)
        assert (tmp_path / "buff.json").exists()
    finally:
        det.close()
