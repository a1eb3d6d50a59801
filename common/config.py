from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULTS: Dict[str, Any] = {
    "positioning": {
        "max_readings": 3,
        "per_reading_timeout_ms": 8000,
        "inter_reading_delay_ms": 800,
        "high_accuracy": True,
        "source": {"kind": "none"},
    },
    "backend": {"url": None, "timeout_s": 15.0},
    "logging": {"level": "INFO"},
}


def _merge(base: Dict, override: Dict) -> Dict:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = "config/params.yaml") -> Dict[str, Any]:
    """
    Load YAML params merged over DEFAULTS. A missing file yields the defaults.

    Env overrides:
      - FIELD_SALES_BACKEND_URL -> backend.url
      - LOG_LEVEL               -> logging.level
    """
    cfg = copy.deepcopy(DEFAULTS)
    if path and Path(path).exists():
        with open(path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config root must be a mapping: {path}")
        cfg = _merge(cfg, loaded)

    if os.getenv("FIELD_SALES_BACKEND_URL"):
        cfg["backend"]["url"] = os.environ["FIELD_SALES_BACKEND_URL"]
    if os.getenv("LOG_LEVEL"):
        cfg["logging"]["level"] = os.environ["LOG_LEVEL"]
    return cfg


def sampler_kwargs(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the `acquire()` keyword arguments out of the positioning block."""
    p = cfg.get("positioning", {})
    return {
        "max_readings": int(p.get("max_readings", 3)),
        "per_reading_timeout_ms": int(p.get("per_reading_timeout_ms", 8000)),
        "inter_reading_delay_ms": int(p.get("inter_reading_delay_ms", 800)),
        "high_accuracy": bool(p.get("high_accuracy", True)),
    }
