# config.py
"""Typed configuration blobs for the whole system."""
from __future__ import annotations

from dataclasses import dataclass

from aim_assist.common import Arm, Team


@dataclass
class CameraConfig:
    source: int | str = 0             # device index or video file
    width: int = 1280
    height: int = 1024
    fps_request: int = 100
    use_v4l2: bool = True
    fourcc_str: str = "MJPG"
    horizontal_fov_deg: float = 60.0  # From camera data-sheet
    gain: int | None = None
    auto_exposure: int | None = 1     # 1=manual, 3=auto
    exposure_time_absolute: int | None = 50  # 1‒5000 (1/10 000 s)
    frame_timeout_s: float = 1.0


# --------------------------------------------------------------------------
#   Detector parameters (persisted as JSON, immutable during a run)
# --------------------------------------------------------------------------
@dataclass(frozen=True)
class BuffDetectorParams:
    binary_th: float = 220.0
    se_erosion: int = 2               # half-size of the morphology kernel
    ap_erosion: float = 1.0           # approxPolyDP epsilon

    contour_size_low_th: int = 2
    rect_ratio_low_th: float = 0.4
    rect_ratio_high_th: float = 2.5

    contour_center_area_low_th: float = 100.0
    contour_center_area_high_th: float = 1000.0
    rect_center_ratio_low_th: float = 0.6
    rect_center_ratio_high_th: float = 1.67


@dataclass(frozen=True)
class ArmorDetectorParams:
    binary_th: float = 120.0
    se_erosion: int = 1

    contour_size_low_th: int = 5
    bar_area_low_th: float = 20.0
    bar_ratio_low_th: float = 2.0     # length / width
    bar_ratio_high_th: float = 12.0
    bar_angle_high_th: float = 35.0   # tilt from vertical, deg

    pair_angle_diff_high_th: float = 10.0
    pair_length_ratio_low_th: float = 0.6
    pair_center_y_ratio_high_th: float = 0.5   # |dy| / mean length
    armor_ratio_low_th: float = 1.0            # spacing / mean length
    armor_ratio_high_th: float = 5.0


@dataclass(frozen=True)
class OreCubeDetectorParams:
    hue_low_th: int = 26
    hue_high_th: int = 34
    saturation_low_th: int = 43
    saturation_high_th: int = 255
    value_low_th: int = 46
    value_high_th: int = 255
    binary_th: float = 120.0
    area_low_th: float = 5000.0
    area_high_th: float = 75000.0


# --------------------------------------------------------------------------
#   Predictor parameters
# --------------------------------------------------------------------------
@dataclass(frozen=True)
class BuffPredictorParams:
    # Angular speed model: speed_offset + speed_amplitude * sin(angular_frequency * t)
    speed_offset: float = 1.305
    speed_amplitude: float = 0.785
    angular_frequency: float = 1.884
    delay_s: float = 3.0              # total system latency
    window_s: float = 90.0            # engagement window


@dataclass(frozen=True)
class ArmorPredictorParams:
    method: str = "KF"                # name of a FilterMethod member
    # Lead time for future prediction (s)
    predict_lead_time_s: float = 0.05
    # Noise parameters tuned for pixel-level tracking
    measurement_noise_std: float = 3.0       # px
    process_noise_std: float = 70.0          # px/s²
    initial_velocity_error_std: float = 30.0  # px/s


@dataclass
class RobotConfig:
    arm: Arm = Arm.INFANTRY
    enemy_team: Team = Team.RED
    params_dir: str = "runtime"
    verbose: int = 2
    log_path: str | None = "logs/aim_assist.log"
