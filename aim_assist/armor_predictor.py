# armor_predictor.py
"""4-state linear Kalman predictor of the tracked armor's image position."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

import cv2
import numpy as np
from filterpy.common import Q_discrete_white_noise
from filterpy.kalman import KalmanFilter

from aim_assist.common import Armor, FilterMethod
from aim_assist.config import ArmorPredictorParams
from aim_assist.helpers import Palette, draw_object
from aim_assist.params import ConfigError, load_params

logger = logging.getLogger(__name__)


def _filter_method(params: ArmorPredictorParams) -> FilterMethod:
    try:
        method = FilterMethod[params.method.upper()]
    except KeyError:
        raise ConfigError(f"Unknown filter method {params.method!r}") from None
    if method == FilterMethod.EKF:
        raise ConfigError("EKF is not available for image-space armor prediction")
    return method


class ArmorPredictor:
    def __init__(
        self,
        params: Optional[ArmorPredictorParams] = None,
        nominal_dt: float = 1.0 / 30,
        *,
        clock: Callable[[], float] = time.monotonic,
        palette: Optional[Palette] = None,
    ):
        self.params = params or ArmorPredictorParams()
        self.method = _filter_method(self.params)
        self.nominal_dt = nominal_dt
        self.palette = palette or Palette()
        self._clock = clock

        self.kf = KalmanFilter(dim_x=4, dim_z=2)
        self.kf.F = np.array(
            [
                [1, 0, nominal_dt, 0],
                [0, 1, 0, nominal_dt],
                [0, 0, 1, 0],
                [0, 0, 0, 1],
            ],
            dtype=float,
        )
        self.kf.H = np.array([[1, 0, 0, 0], [0, 1, 0, 0]], dtype=float)
        self._build_noise()

        self.armor: Optional[Armor] = None
        self.predict_armor = Armor.empty()
        self.initialized = False
        self.last_time: Optional[float] = None
        self.age_frames = 0

    # ------------------------------------------------------------------ #
    #   N O I S E
    # ------------------------------------------------------------------ #
    def _build_noise(self) -> None:
        mvar = self.params.measurement_noise_std**2
        self.kf.R = np.diag([mvar, mvar])
        self._update_Q(self.nominal_dt)
        vel_var = self.params.initial_velocity_error_std**2
        self.kf.P = np.diag([mvar, mvar, vel_var, vel_var])

    def _update_Q(self, dt: float) -> None:
        """Rebuild Q for a given Δt and current process-noise σ."""
        pvar = self.params.process_noise_std**2
        self.kf.Q = Q_discrete_white_noise(
            dim=2, dt=dt, var=pvar, order_by_dim=False, block_size=2
        )

    def load_params(self, path: str | Path) -> None:
        params = load_params(path, ArmorPredictorParams)
        self.method = _filter_method(params)
        self.params = params
        self._build_noise()

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def set_armor(self, armor: Optional[Armor]) -> None:
        self.armor = None if armor is None or armor.is_empty else armor

    def reset(self) -> None:
        self.initialized = False
        self.last_time = None
        self.age_frames = 0
        self.kf.x = np.zeros((4, 1))
        self._build_noise()

    def _step(self, timestamp: float) -> None:
        # ----- Δt clamping + predict -----
        dt = self.nominal_dt
        if self.last_time is not None:
            actual_dt = timestamp - self.last_time
            if actual_dt > 1e-6:
                dt = float(np.clip(actual_dt, 0.5 * self.nominal_dt, 2.0 * self.nominal_dt))
        self.kf.F[0, 2] = dt
        self.kf.F[1, 3] = dt
        self._update_Q(dt)
        self.kf.predict()

        # ----- conditional update -----
        if self.armor is not None:
            cx, cy = self.armor.center
            if not self.initialized:
                # First detection initializes state.
                self.kf.x = np.array([[cx], [cy], [0.0], [0.0]])
                self._build_noise()
                self.initialized = True
                self.age_frames = 1
            else:
                self.kf.update(np.array([[cx], [cy]]))
                self.age_frames += 1
        else:
            # Lost detection
            self.age_frames = 0
        self.last_time = timestamp

    def predict(self) -> List[Armor]:
        self.predict_armor = Armor.empty()
        if self.method == FilterMethod.UNKNOWN:
            if self.armor is not None:
                self.predict_armor = self.armor
            return [self.predict_armor]

        self._step(self._clock())
        if self.armor is None:
            return [self.predict_armor]

        x, y, vx, vy = self.kf.x.flatten()
        lead = self.params.predict_lead_time_s
        fx, fy = x + vx * lead, y + vy * lead
        cx, cy = self.armor.center
        self.predict_armor = self.armor.translated(fx - cx, fy - cy)
        logger.debug("Predict center is %.1f, %.1f", fx, fy)
        return [self.predict_armor]

    def visualize_prediction(self, output: np.ndarray, add_label: bool = False) -> None:
        if self.predict_armor.is_empty:
            return
        draw_object(output, self.predict_armor, self.palette.yellow, add_label, thickness=3)
        if self.armor is not None:
            p0 = tuple(int(v) for v in self.armor.center)
            p1 = tuple(int(v) for v in self.predict_armor.center)
            cv2.line(output, p0, p1, self.palette.red, 2)
