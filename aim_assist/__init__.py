# aim_assist/__init__.py
"""Aim-assist package - re-export high-level API."""
from .common import (                            # noqa: F401
    RFID, AimMethod, Arm, Armor, Buff, Direction, FilterMethod, OreCube, Team,
)
from .config import (                            # noqa: F401
    ArmorDetectorParams, ArmorPredictorParams, BuffDetectorParams,
    BuffPredictorParams, CameraConfig, OreCubeDetectorParams, RobotConfig,
)
from .detector import DetectorKind, create_detector  # noqa: F401
from .armor_detector import ArmorDetector        # noqa: F401
from .buff_detector import BuffDetector          # noqa: F401
from .orecube_detector import OreCubeDetector    # noqa: F401
from .buff_predictor import BuffPredictor        # noqa: F401
from .armor_predictor import ArmorPredictor      # noqa: F401
from .aim_assistant import AimAssistant          # noqa: F401
from .params import ConfigError, load_params     # noqa: F401
