# detector.py
"""Detector contract shared by every detection strategy, plus the registry."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Tuple, Type, TypeVar

import numpy as np

from aim_assist.helpers import Palette
from aim_assist.params import load_params

logger = logging.getLogger(__name__)

TargetT = TypeVar("TargetT")
ParamsT = TypeVar("ParamsT")


class DetectorKind(Enum):
    ARMOR = auto()
    SNIPE = auto()
    BUFF = auto()
    ORE_CUBE = auto()


class Detector(Generic[TargetT, ParamsT]):
    """
    Consumes one frame per :meth:`detect` call and returns the targets found.

    Subclasses set ``params_cls`` to their parameter dataclass. The frame is
    never kept after ``detect`` returns; only derived geometry is.
    """
    params_cls: Type[ParamsT]

    def __init__(
        self,
        params: Optional[ParamsT] = None,
        *,
        palette: Optional[Palette] = None,
        workers: Optional[int] = None,
    ):
        self.params: ParamsT = params if params is not None else self.params_cls()
        self.palette = palette or Palette()
        self.frame_size: Tuple[int, int] = (0, 0)
        self.targets: List[TargetT] = []
        self._pool = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=type(self).__name__
        )

    def load_params(self, path: str | Path) -> None:
        self.params = load_params(path, self.params_cls)

    def detect(self, frame: np.ndarray) -> List[TargetT]:
        raise NotImplementedError

    def visualize_result(self, output: np.ndarray, verbose: int = 1) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} targets={len(self.targets)}>"


# --------------------------------------------------------------------------
#   Registry
# --------------------------------------------------------------------------
DETECTORS: Dict[DetectorKind, Type[Detector]] = {}


def register(*kinds: DetectorKind) -> Callable[[Type[Detector]], Type[Detector]]:
    def wrap(cls: Type[Detector]) -> Type[Detector]:
        for kind in kinds:
            DETECTORS[kind] = cls
        return cls
    return wrap


def create_detector(
    kind: DetectorKind, params_path: str | Path | None = None, **kwargs
) -> Detector:
    try:
        cls = DETECTORS[kind]
    except KeyError:
        raise ValueError(f"No detector registered for {kind}") from None
    detector = cls(**kwargs)
    if params_path is not None:
        detector.load_params(params_path)
    logger.debug("Constructed %s for %s", cls.__name__, kind.name)
    return detector
