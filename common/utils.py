from __future__ import annotations

from typing import Dict, Iterable, Optional
from datetime import datetime
import base64
import mimetypes
from pathlib import Path


def parse_iso8601(ts: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp with optional 'Z'; None for empty or unparseable input."""
    if not ts or not isinstance(ts, str):
        return None
    ts = ts.strip()
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(ts)
    except ValueError:
        return None


def ms_to_s(ms: float) -> float:
    return max(0.0, float(ms)) / 1e3


def parse_kv_pairs(items: Iterable[str]) -> Dict[str, int]:
    """
    Parse CLI pairs like ["Chicken=2", "Beef=1"] into {"Chicken": 2, "Beef": 1}.
    Repeated names are summed.
    """
    out: Dict[str, int] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Expected NAME=QTY, got {item!r}")
        name, qty = item.rsplit("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Missing name in {item!r}")
        out[name] = out.get(name, 0) + int(qty)
    return out


def file_to_data_url(path: str) -> str:
    """Read an image file into a `data:<mime>;base64,...` URL (selfie payload format)."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    mime = mimetypes.guess_type(p.name)[0] or "image/png"
    return f"data:{mime};base64,{base64.b64encode(p.read_bytes()).decode('ascii')}"
