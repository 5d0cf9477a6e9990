# logger.py
"""Logging setup and a per-key throttle for messages repeated every frame."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional

_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def setup_logging(level: int = logging.INFO, log_path: str | Path | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        path = Path(log_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    logging.basicConfig(level=level, format=_FORMAT, handlers=handlers, force=True)
    logging.getLogger(__name__).debug("Log path : %s", log_path)


class LogThrottler:
    def __init__(
        self,
        default_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._default_ms = int(default_ms)
        self._clock = clock
        self._last_s: Dict[str, float] = {}

    def should_log(self, key: str, throttle_ms: Optional[int] = None) -> bool:
        if throttle_ms is None:
            throttle_ms = self._default_ms
        now = self._clock()
        last = self._last_s.get(key)
        if last is None or (now - last) * 1000.0 >= throttle_ms:
            self._last_s[key] = now
            return True
        return False
