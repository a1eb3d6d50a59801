from __future__ import annotations

import csv
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import numpy as np

from common.errors import LocationUnavailable, PositionError, PositionErrorCode
from common.geo import offset_deg
from common.types import PositionOptions, RawReading


@runtime_checkable
class PositionSource(Protocol):
    """
    The platform positioning capability: one single-shot "get current position".

    Implementations raise PositionError on a failed fix. Their own caching and
    timeout behavior is their business; the sampler only passes options through.
    """

    @property
    def supported(self) -> bool: ...

    def get_current_position(self, options: PositionOptions) -> RawReading: ...


class UnsupportedSource:
    """A platform without any positioning capability."""

    supported = False

    def get_current_position(self, options: PositionOptions) -> RawReading:
        raise LocationUnavailable("positioning is not supported on this platform")


@dataclass
class StaticSource:
    """Always reports the same fix. Handy for kiosks and demos."""
    latitude: float
    longitude: float
    accuracy: float = 10.0
    supported: bool = True

    def get_current_position(self, options: PositionOptions) -> RawReading:
        return RawReading(self.latitude, self.longitude, self.accuracy)


@dataclass
class CSVFixSource:
    """
    Replay fixes from a CSV with columns: latitude, longitude, accuracy[, error].

    A non-empty `error` cell (1/2/3 or PERMISSION_DENIED/POSITION_UNAVAILABLE/TIMEOUT)
    makes that request fail. Once the file is exhausted every request fails with
    POSITION_UNAVAILABLE. An unparseable row raises ValueError. With realtime=True
    each request sleeps `delay_s`.
    """
    path: str
    realtime: bool = False
    delay_s: float = 0.5
    supported: bool = True
    _rows: List[Dict[str, str]] = field(default_factory=list, init=False, repr=False)
    _pos: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        if not Path(self.path).exists():
            raise FileNotFoundError(f"Fix CSV not found: {self.path}")
        with open(self.path, newline="") as f:
            self._rows = list(csv.DictReader(f))

    @property
    def remaining(self) -> int:
        return max(0, len(self._rows) - self._pos)

    def get_current_position(self, options: PositionOptions) -> RawReading:
        if self.realtime and self.delay_s > 0:
            time.sleep(min(self.delay_s, options.timeout_ms / 1e3))
        if self._pos >= len(self._rows):
            raise PositionError(PositionErrorCode.POSITION_UNAVAILABLE, "fix replay exhausted")
        row = self._rows[self._pos]
        self._pos += 1

        # Malformed rows raise ValueError, never PositionError.
        try:
            err = (row.get("error") or "").strip()
            if err:
                code = _parse_code(err)
            else:
                return RawReading(
                    latitude=float(row["latitude"]),
                    longitude=float(row["longitude"]),
                    accuracy=float(row.get("accuracy") or 0.0),
                )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{self.path}: malformed fix at row {self._pos}: {e}") from e
        raise PositionError(code, f"replayed error at row {self._pos}")


def _parse_code(s: str) -> PositionErrorCode:
    if s.isdigit():
        return PositionErrorCode(int(s))
    return PositionErrorCode[s.upper()]


@dataclass
class SyntheticFixSource:
    """
    Procedural GPS generator: Gaussian jitter around a centre point.

    Args:
        latitude, longitude: true position (deg)
        jitter_m: 1-sigma horizontal noise (meters)
        accuracy_m: nominal reported accuracy; low-accuracy requests report 4x
        failure_rate: probability a request fails with TIMEOUT
        seed: RNG seed (same seed -> same sequence)
    """
    latitude: float
    longitude: float
    jitter_m: float = 5.0
    accuracy_m: float = 8.0
    failure_rate: float = 0.0
    seed: Optional[int] = 1234
    supported: bool = True
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.failure_rate <= 1.0:
            raise ValueError("failure_rate must be in [0, 1]")
        self._rng = np.random.default_rng(self.seed)

    def get_current_position(self, options: PositionOptions) -> RawReading:
        if self._rng.random() < self.failure_rate:
            raise PositionError(PositionErrorCode.TIMEOUT, f"no fix within {options.timeout_ms} ms")
        north, east = self._rng.normal(0.0, self.jitter_m, size=2)
        dlat, dlon = offset_deg(self.latitude, float(north), float(east))
        acc = self.accuracy_m if options.enable_high_accuracy else self.accuracy_m * 4.0
        acc = abs(float(self._rng.normal(acc, acc * 0.1)))
        return RawReading(self.latitude + dlat, self.longitude + dlon, acc)


def build_source(cfg: Dict[str, Any]) -> PositionSource:
    """
    Build a source from a config block, e.g.
        {"kind": "synthetic", "latitude": -1.29, "longitude": 36.82, "jitter_m": 4}
    """
    kind = str(cfg.get("kind", "none")).lower()
    if kind == "none":
        return UnsupportedSource()
    if kind == "static":
        return StaticSource(
            latitude=float(cfg["latitude"]),
            longitude=float(cfg["longitude"]),
            accuracy=float(cfg.get("accuracy", 10.0)),
        )
    if kind == "csv":
        return CSVFixSource(
            path=str(cfg["path"]),
            realtime=bool(cfg.get("realtime", False)),
            delay_s=float(cfg.get("delay_s", 0.5)),
        )
    if kind == "synthetic":
        seed = cfg.get("seed", 1234)
        return SyntheticFixSource(
            latitude=float(cfg["latitude"]),
            longitude=float(cfg["longitude"]),
            jitter_m=float(cfg.get("jitter_m", 5.0)),
            accuracy_m=float(cfg.get("accuracy_m", 8.0)),
            failure_rate=float(cfg.get("failure_rate", 0.0)),
            seed=None if seed is None else int(seed),
        )
    raise ValueError(f"Unknown position source kind: {kind!r}")
