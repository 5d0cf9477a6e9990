"""Tests for the Kalman armor predictor."""
from __future__ import annotations

import pytest

from aim_assist.armor_predictor import ArmorPredictor
from aim_assist.common import Armor
from aim_assist.config import ArmorPredictorParams
from aim_assist.params import ConfigError

DT = 1.0 / 30


def _armor(x: float, y: float = 240.0) -> Armor:
    return Armor.from_rect(((x, y), (60.0, 30.0), 0.0))


class TestArmorPredictor:
    def test_first_measurement_is_returned(self, clock):
        predictor = ArmorPredictor(clock=clock)
        predictor.set_armor(_armor(300.0))
        out = predictor.predict()
        assert len(out) == 1
        assert out[0].center == pytest.approx((300.0, 240.0), abs=1e-3)
        assert predictor.initialized

    def test_moving_target_is_led(self, clock):
        predictor = ArmorPredictor(ArmorPredictorParams(predict_lead_time_s=0.5), clock=clock)
        x = 100.0
        for _ in range(15):
            predictor.set_armor(_armor(x))
            out = predictor.predict()
            clock.advance(DT)
            x += 3.0
        last_x = x - 3.0
        assert out[0].center[0] > last_x
        assert out[0].center[1] == pytest.approx(240.0, abs=1.0)

    def test_no_armor(self, clock):
        predictor = ArmorPredictor(clock=clock)
        predictor.set_armor(None)
        assert predictor.predict()[0].is_empty
        predictor.set_armor(Armor.empty())
        assert predictor.predict()[0].is_empty

    def test_lost_target_resets_age(self, clock):
        predictor = ArmorPredictor(clock=clock)
        predictor.set_armor(_armor(300.0))
        predictor.predict()
        clock.advance(DT)
        predictor.set_armor(_armor(302.0))
        predictor.predict()
        assert predictor.age_frames == 2
        clock.advance(DT)
        predictor.set_armor(None)
        predictor.predict()
        assert predictor.age_frames == 0

    def test_unknown_method_passes_through(self, clock):
        predictor = ArmorPredictor(ArmorPredictorParams(method="UNKNOWN"), clock=clock)
        armor = _armor(300.0)
        predictor.set_armor(armor)
        assert predictor.predict()[0] is armor

    @pytest.mark.parametrize("method", ["EKF", "UKF"])
    def test_unsupported_method(self, method):
        with pytest.raises(ConfigError):
            ArmorPredictor(ArmorPredictorParams(method=method))

    def test_reset(self, clock):
        predictor = ArmorPredictor(clock=clock)
        predictor.set_armor(_armor(300.0))
        predictor.predict()
        predictor.reset()
        assert not predictor.initialized
        assert predictor.last_time is None
