# params.py
"""Self-healing JSON parameter files."""
from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P")


class ConfigError(RuntimeError):
    """Raised when a parameter file can neither be read nor regenerated."""


class ParamFile:
    """One JSON key/value file backing a params dataclass."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser().resolve()

    # ------------------------------------------------------------------
    #   Internal helpers
    # ------------------------------------------------------------------
    def _read(self) -> Optional[Dict[str, Any]]:
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except FileNotFoundError:
            logger.error("Can not find params file %s", self.path)
            return None
        except json.JSONDecodeError as exc:
            logger.error("JSON error in %s: %s", self.path, exc)
            return None
        except OSError as exc:
            logger.error("Can not load params from %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            logger.error("Params file %s does not hold an object", self.path)
            return None
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as fp:
                json.dump(data, fp, indent=4)
        except OSError as exc:
            raise ConfigError(f"Can not write params file {self.path}: {exc}") from exc
        logger.debug("Inited params in %s", self.path)

    @staticmethod
    def _coerce(name: str, value: Any, default: Any) -> Any:
        if isinstance(default, bool):
            return bool(value)
        if isinstance(default, (int, float)):
            try:
                return type(default)(value)
            except (TypeError, ValueError):
                logger.warning("Bad value %r for %s, using %r", value, name, default)
                return default
        return value

    def _build(self, params_cls: Type[P], data: Dict[str, Any]) -> P:
        defaults = params_cls()
        names = [f.name for f in dataclasses.fields(params_cls)]
        kwargs = {}
        for name in names:
            default = getattr(defaults, name)
            if name in data:
                kwargs[name] = self._coerce(name, data[name], default)
            else:
                logger.warning("Missing key %s in %s, using %r", name, self.path, default)
                kwargs[name] = default
        unknown = sorted(set(data) - set(names))
        if unknown:
            logger.warning("Ignoring unknown keys in %s: %s", self.path, ", ".join(unknown))
        return params_cls(**kwargs)

    # ------------------------------------------------------------------
    #   Public API
    # ------------------------------------------------------------------
    def init_defaults(self, params_cls: Type[P]) -> None:
        self._write(dataclasses.asdict(params_cls()))

    def load(self, params_cls: Type[P]) -> P:
        """
        Parse the file into ``params_cls``. When it is missing or unreadable
        the defaults are written to the same path and parsed again.
        """
        data = self._read()
        if data is None:
            self.init_defaults(params_cls)
            data = self._read()
            if data is None:
                raise ConfigError(f"Can not reload params file {self.path}")
            logger.warning("Can not find params file. Created and reloaded %s", self.path)
        params = self._build(params_cls, data)
        logger.debug("Params loaded from %s", self.path)
        return params


def load_params(path: str | Path, params_cls: Type[P]) -> P:
    return ParamFile(path).load(params_cls)
