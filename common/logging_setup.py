from __future__ import annotations

import logging
import os
import sys
import json
import time
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON log formatter:
      { "t": 169, "lvl": "INFO", "name": "mod", "msg": "text", "extra": {...} }
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # Structured fields passed as extra={"extra": {...}}
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, stream=None) -> None:
    """
    Configure root logger once with JSON formatting.
    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (e.g., DEBUG/INFO/WARNING/ERROR)
      - default INFO
    """
    root = logging.getLogger()
    if getattr(root, "_field_sales_configured", False):
        if level:
            root.setLevel(_resolve_level(level))
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level or os.environ.get("LOG_LEVEL") or "INFO"))
    root._field_sales_configured = True  # type: ignore[attr-defined]


def _resolve_level(name: str) -> int:
    lvl = getattr(logging, str(name).upper(), None)
    return lvl if isinstance(lvl, int) else logging.INFO


def fields(**kw: Any) -> Dict[str, Dict[str, Any]]:
    """Shorthand for `log.info(msg, extra=fields(a=1))`."""
    return {"extra": kw}


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)
