"""
Unit tests for the field app CLI
"""

import json
import os
import sys
from unittest.mock import patch

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import BackendError
from field_app import service


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    monkeypatch.delenv("FIELD_SALES_BACKEND_URL", raising=False)
    return ["--config", str(tmp_path / "absent.yaml")]


@pytest.fixture
def selfie(tmp_path):
    p = tmp_path / "selfie.png"
    p.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    return str(p)


class TestLocate:
    def test_static_source(self, no_config, capsys):
        rc = service.main(no_config + ["locate", "--source", "static", "--lat", "1.0", "--lon", "36.0", "--delay-ms", "0"])
        assert rc == service.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"latitude": 1.0, "longitude": 36.0}

    def test_csv_source_partial(self, no_config, tmp_path, capsys):
        p = tmp_path / "fixes.csv"
        p.write_text("latitude,longitude,accuracy,error\n2.0,40.0,5,\n,,,TIMEOUT\n9.0,9.0,5,\n")
        rc = service.main(no_config + ["locate", "--source", "csv", "--csv", str(p), "--delay-ms", "0"])
        assert rc == service.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"latitude": 2.0, "longitude": 40.0}

    def test_no_positioning(self, no_config, capsys):
        rc = service.main(no_config + ["locate", "--source", "none"])
        assert rc == service.EXIT_NO_LOCATION
        assert "Enable GPS" in capsys.readouterr().err

    def test_all_attempts_fail(self, no_config, capsys):
        rc = service.main(no_config + [
            "locate", "--source", "synthetic", "--lat", "0", "--lon", "0",
            "--failure-rate", "1.0", "--readings", "2", "--delay-ms", "0",
        ])
        assert rc == service.EXIT_NO_LOCATION

    def test_bad_source_config(self, no_config, capsys):
        rc = service.main(no_config + ["locate", "--source", "static"])
        assert rc == service.EXIT_INVALID


class TestInvalidInput:
    """Bad flags or replay data end with EXIT_INVALID and a message, never a traceback"""

    def static(self, no_config, *extra):
        return no_config + ["locate", "--source", "static", "--lat", "1.0", "--lon", "36.0", "--delay-ms", "0"] + list(extra)

    def test_zero_readings(self, no_config, capsys):
        rc = service.main(self.static(no_config, "--readings", "0"))
        assert rc == service.EXIT_INVALID
        assert "max_readings" in capsys.readouterr().err

    def test_negative_timeout(self, no_config, capsys):
        rc = service.main(self.static(no_config, "--timeout-ms", "-1"))
        assert rc == service.EXIT_INVALID
        assert "per_reading_timeout_ms" in capsys.readouterr().err

    def test_negative_delay(self, no_config, capsys):
        rc = service.main(no_config + ["locate", "--source", "static", "--lat", "1.0", "--lon", "36.0", "--delay-ms", "-1"])
        assert rc == service.EXIT_INVALID

    def test_zero_timeout_accepted(self, no_config, capsys):
        rc = service.main(self.static(no_config, "--timeout-ms", "0"))
        assert rc == service.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {"latitude": 1.0, "longitude": 36.0}

    def test_malformed_csv_row(self, no_config, tmp_path, capsys):
        p = tmp_path / "bad.csv"
        p.write_text("latitude,longitude,accuracy,error\nabc,40.0,5,\n")
        rc = service.main(no_config + ["locate", "--source", "csv", "--csv", str(p), "--delay-ms", "0"])
        assert rc == service.EXIT_INVALID
        assert "malformed fix at row 1" in capsys.readouterr().err


class TestSubmit:
    def args(self, no_config, selfie, *extra):
        return no_config + [
            "submit", "--source", "static", "--lat", "-1.29", "--lon", "36.82", "--delay-ms", "0",
            "--backend-url", "https://backend.example/exec",
            "--national-id", "123", "--name", "Jane", "--region", "Nairobi", "--shop", "Duka",
            "--selfie-file", selfie,
        ] + list(extra)

    def test_submit_sold(self, no_config, selfie, capsys):
        with patch("field_app.service.ApiService.save_visit", return_value={"success": True}) as save:
            rc = service.main(self.args(no_config, selfie, "--sold", "Yes", "--sku", "Chicken=2", "--sku", "Beef=1"))

        assert rc == service.EXIT_OK
        record = save.call_args[0][0]
        assert record["skus"] == [{"name": "Chicken", "qty": 2}, {"name": "Beef", "qty": 1}]
        assert record["latitude"] == pytest.approx(-1.29)
        assert record["selfie"].startswith("data:image/png;base64,")
        assert json.loads(capsys.readouterr().out) == {"success": True}

    def test_submit_invalid_form(self, no_config, selfie, capsys):
        with patch("field_app.service.ApiService.save_visit") as save:
            rc = service.main(self.args(no_config, selfie, "--sold", "No"))
        assert rc == service.EXIT_INVALID
        assert "Select reason" in capsys.readouterr().err
        save.assert_not_called()

    def test_submit_backend_down(self, no_config, selfie, capsys):
        with patch("field_app.service.ApiService.save_visit", side_effect=BackendError("down", status=502)):
            rc = service.main(self.args(no_config, selfie, "--sold", "No", "--reason", "Closed"))
        assert rc == service.EXIT_BACKEND
        assert "Submission failed" in capsys.readouterr().err

    def test_submit_without_backend_url(self, no_config, selfie):
        args = [a for a in self.args(no_config, selfie, "--sold", "No", "--reason", "Closed")
                if a != "https://backend.example/exec" and a != "--backend-url"]
        assert service.main(args) == service.EXIT_INVALID
