"""
Unit tests for position sources
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import LocationUnavailable, PositionError, PositionErrorCode
from common.geo import haversine_m
from common.types import PositionOptions, RawReading
from positioning.sources import (
    CSVFixSource,
    PositionSource,
    StaticSource,
    SyntheticFixSource,
    UnsupportedSource,
    build_source,
)


OPTS = PositionOptions(enable_high_accuracy=True, timeout_ms=8000, maximum_age_ms=0)


@pytest.fixture
def fix_csv(tmp_path):
    p = tmp_path / "fixes.csv"
    p.write_text(
        "latitude,longitude,accuracy,error\n"
        "1.0,36.0,5,\n"
        ",,,TIMEOUT\n"
        "0.998,36.002,6,\n"
        ",,,1\n"
    )
    return str(p)


class TestStaticAndUnsupported:
    def test_static_source(self):
        src = StaticSource(latitude=-1.29, longitude=36.82, accuracy=3.0)
        assert src.supported
        assert src.get_current_position(OPTS) == RawReading(-1.29, 36.82, 3.0)

    def test_unsupported_source(self):
        src = UnsupportedSource()
        assert src.supported is False
        with pytest.raises(LocationUnavailable):
            src.get_current_position(OPTS)

    def test_sources_satisfy_protocol(self):
        assert isinstance(StaticSource(0.0, 0.0), PositionSource)
        assert isinstance(UnsupportedSource(), PositionSource)


class TestCSVFixSource:
    """Replay of recorded fixes and errors"""

    def test_replay_in_order(self, fix_csv):
        src = CSVFixSource(fix_csv)
        assert src.remaining == 4

        assert src.get_current_position(OPTS) == RawReading(1.0, 36.0, 5.0)

        with pytest.raises(PositionError) as ei:
            src.get_current_position(OPTS)
        assert ei.value.code is PositionErrorCode.TIMEOUT

        assert src.get_current_position(OPTS) == RawReading(0.998, 36.002, 6.0)

        with pytest.raises(PositionError) as ei:
            src.get_current_position(OPTS)
        assert ei.value.code is PositionErrorCode.PERMISSION_DENIED

    def test_exhausted(self, tmp_path):
        p = tmp_path / "one.csv"
        p.write_text("latitude,longitude,accuracy\n2.0,40.0,7\n")
        src = CSVFixSource(str(p))
        src.get_current_position(OPTS)

        with pytest.raises(PositionError) as ei:
            src.get_current_position(OPTS)
        assert ei.value.code is PositionErrorCode.POSITION_UNAVAILABLE
        assert src.remaining == 0

    @pytest.mark.parametrize("row", ["abc,40.0,5,", "1.0,,5,", "1.0,36.0,far,"])
    def test_malformed_row_raises_value_error(self, tmp_path, row):
        p = tmp_path / "bad.csv"
        p.write_text("latitude,longitude,accuracy,error\n" + row + "\n")
        src = CSVFixSource(str(p))

        with pytest.raises(ValueError, match="malformed fix at row") as ei:
            src.get_current_position(OPTS)
        assert not isinstance(ei.value, PositionError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CSVFixSource(str(tmp_path / "nope.csv"))


class TestSyntheticFixSource:
    """Procedural fixes around a centre point"""

    def test_same_seed_same_fixes(self):
        a = SyntheticFixSource(latitude=-1.2921, longitude=36.8219, seed=7)
        b = SyntheticFixSource(latitude=-1.2921, longitude=36.8219, seed=7)
        assert [a.get_current_position(OPTS) for _ in range(3)] == [b.get_current_position(OPTS) for _ in range(3)]

    def test_fixes_stay_near_centre(self):
        src = SyntheticFixSource(latitude=-1.2921, longitude=36.8219, jitter_m=5.0, seed=1)
        for _ in range(50):
            r = src.get_current_position(OPTS)
            assert haversine_m(-1.2921, 36.8219, r.latitude, r.longitude) < 50.0
            assert r.accuracy > 0

    def test_low_accuracy_reports_worse_accuracy(self):
        src = SyntheticFixSource(latitude=0.0, longitude=0.0, accuracy_m=8.0, seed=3)
        low = PositionOptions(enable_high_accuracy=False, timeout_ms=8000)
        assert src.get_current_position(low).accuracy > 16.0

    def test_always_failing(self):
        src = SyntheticFixSource(latitude=0.0, longitude=0.0, failure_rate=1.0)
        with pytest.raises(PositionError) as ei:
            src.get_current_position(OPTS)
        assert ei.value.code is PositionErrorCode.TIMEOUT

    def test_invalid_failure_rate(self):
        with pytest.raises(ValueError):
            SyntheticFixSource(latitude=0.0, longitude=0.0, failure_rate=1.5)


class TestBuildSource:
    def test_kinds(self, fix_csv):
        assert isinstance(build_source({"kind": "none"}), UnsupportedSource)
        assert isinstance(build_source({}), UnsupportedSource)
        assert isinstance(build_source({"kind": "static", "latitude": 1, "longitude": 2}), StaticSource)
        assert isinstance(build_source({"kind": "csv", "path": fix_csv}), CSVFixSource)
        src = build_source({"kind": "synthetic", "latitude": 1, "longitude": 2, "jitter_m": 3, "seed": None})
        assert isinstance(src, SyntheticFixSource)
        assert src.jitter_m == 3.0
        assert src.seed is None

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown position source"):
            build_source({"kind": "gpsd"})

    def test_static_requires_coordinates(self):
        with pytest.raises(KeyError):
            build_source({"kind": "static"})
