from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True, slots=True)
class RawReading:
    """
    One device location fix.

    Attributes:
        latitude, longitude: WGS84 degrees.
        accuracy: device-reported uncertainty radius (meters).
    """
    latitude: float
    longitude: float
    accuracy: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0) or not (-180.0 <= self.longitude <= 180.0):
            raise ValueError("latitude/longitude out of range")
        if self.accuracy < 0:
            raise ValueError("accuracy must be >= 0")


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """
    Averaged location handed to the caller. Accuracy is deliberately absent.
    """
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class PositionOptions:
    """Options for a single-shot position request (mirrors the platform API)."""
    enable_high_accuracy: bool = True
    timeout_ms: int = 8000
    maximum_age_ms: int = 0

    def __post_init__(self) -> None:
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must be >= 0")
        if self.maximum_age_ms < 0:
            raise ValueError("maximum_age_ms must be >= 0")
