"""
Multi-sample location acquisition.

Polls a PositionSource up to `max_readings` times, averages whatever fixes it
collected and hands back a ResolvedLocation. One request is in flight at a
time; the call blocks until it reaches Succeeded or Failed.

Averaging is a plain arithmetic mean: no accuracy weighting and no outlier
rejection. A 200 m fix counts the same as a 5 m one.

Retry asymmetry:
  - nothing collected yet  -> a failed attempt is retried while attempts remain
  - something collected    -> the first failure ends the acquisition with
                              whatever was collected (partial success)
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from common.errors import LocationAcquisitionFailed, LocationUnavailable, PositionError
from common.geo import max_spread_m
from common.logging_setup import fields, get_logger
from common.types import PositionOptions, RawReading, ResolvedLocation
from common.utils import ms_to_s
from positioning.sources import PositionSource


log = get_logger("positioning.sampler")


class SamplerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def check_params(max_readings: int, per_reading_timeout_ms: int, inter_reading_delay_ms: int) -> None:
    """
    Reject acquisition parameters that can never work.
    A timeout of 0 is allowed: the platform treats it as "fail unless a fix is ready now".
    """
    if int(max_readings) < 1:
        raise ValueError("max_readings must be >= 1")
    if int(per_reading_timeout_ms) < 0:
        raise ValueError("per_reading_timeout_ms must be >= 0")
    if int(inter_reading_delay_ms) < 0:
        raise ValueError("inter_reading_delay_ms must be >= 0")


def average_readings(readings: Sequence[RawReading]) -> ResolvedLocation:
    """Arithmetic mean of latitude/longitude. Deterministic; raises on empty input."""
    if not readings:
        raise ValueError("cannot average an empty sample set")
    lat = np.fromiter((r.latitude for r in readings), dtype=float, count=len(readings))
    lon = np.fromiter((r.longitude for r in readings), dtype=float, count=len(readings))
    return ResolvedLocation(latitude=float(lat.mean()), longitude=float(lon.mean()))


class LocationSampler:
    """
    Stabilize a coordinate by averaging several single-shot fixes.

    Params:
        source: the positioning capability (see positioning.sources)
        sleep: blocking sleep in seconds; injected so tests don't wait
    """

    def __init__(self, source: PositionSource, sleep: Callable[[float], None] = time.sleep):
        self.source = source
        self._sleep = sleep
        self.state = SamplerState.IDLE
        self.attempt = 0

    def acquire(
        self,
        max_readings: int = 3,
        per_reading_timeout_ms: int = 8000,
        inter_reading_delay_ms: int = 800,
        high_accuracy: bool = True,
    ) -> ResolvedLocation:
        """
        Collect up to `max_readings` fixes and return their mean.

        Raises:
            ValueError: bad parameters (see check_params)
            LocationUnavailable: the source has no positioning capability
            LocationAcquisitionFailed: every attempt failed, zero readings
        """
        check_params(max_readings, per_reading_timeout_ms, inter_reading_delay_ms)
        max_readings = int(max_readings)

        self.state = SamplerState.IDLE
        self.attempt = 0

        if not self.source.supported:
            self.state = SamplerState.FAILED
            log.error("positioning not supported on this platform")
            raise LocationUnavailable("positioning is not supported on this platform")

        opts = PositionOptions(
            enable_high_accuracy=bool(high_accuracy),
            timeout_ms=int(per_reading_timeout_ms),
            maximum_age_ms=0,  # never reuse a cached fix
        )
        delay_s = ms_to_s(inter_reading_delay_ms)
        samples: List[RawReading] = []
        last_error: Optional[PositionError] = None

        self.state = SamplerState.POLLING
        while self.attempt < max_readings:
            try:
                reading = self.source.get_current_position(opts)
            except PositionError as e:
                last_error = e
                if samples:
                    log.warning(
                        "reading %d failed, using %d of %d samples",
                        self.attempt + 1, len(samples), max_readings,
                        extra=fields(code=e.code.name, collected=len(samples)),
                    )
                    return self._resolve(samples)
                if self.attempt + 1 < max_readings:
                    log.info(
                        "reading %d failed (%s), retrying",
                        self.attempt + 1, e.code.name,
                    )
                    self._sleep(delay_s)
                    self.attempt += 1
                    continue
                self.state = SamplerState.FAILED
                log.error("no location after %d attempt(s)", max_readings, extra=fields(code=e.code.name))
                raise LocationAcquisitionFailed(max_readings, last_error) from e

            samples.append(reading)
            self.attempt += 1
            log.debug(
                "reading %d/%d accuracy=%.1fm",
                self.attempt, max_readings, reading.accuracy,
                extra=fields(lat=reading.latitude, lon=reading.longitude, accuracy=reading.accuracy),
            )
            if self.attempt == max_readings:
                return self._resolve(samples)
            self._sleep(delay_s)

        raise RuntimeError("unreachable: acquisition loop ended without a terminal state")

    def _resolve(self, samples: Sequence[RawReading]) -> ResolvedLocation:
        loc = average_readings(samples)
        avg_acc = float(np.mean([s.accuracy for s in samples]))
        spread = max_spread_m([(s.latitude, s.longitude) for s in samples])
        log.info(
            "location resolved from %d sample(s), avg accuracy %.1fm",
            len(samples), avg_acc,
            extra=fields(lat=loc.latitude, lon=loc.longitude, samples=len(samples),
                         avg_accuracy_m=avg_acc, spread_m=spread),
        )
        self.state = SamplerState.SUCCEEDED
        return loc


def acquire(
    source: PositionSource,
    max_readings: int = 3,
    per_reading_timeout_ms: int = 8000,
    inter_reading_delay_ms: int = 800,
    high_accuracy: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> ResolvedLocation:
    """One-shot convenience wrapper around LocationSampler.acquire()."""
    return LocationSampler(source, sleep=sleep).acquire(
        max_readings=max_readings,
        per_reading_timeout_ms=per_reading_timeout_ms,
        inter_reading_delay_ms=inter_reading_delay_ms,
        high_accuracy=high_accuracy,
    )
