from __future__ import annotations

import logging
import os
import sys
import json
import time
from typing import Optional

# Loggers uvicorn creates; with log_config=None they are left unconfigured.
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


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
        # logger.info("...", extra={"extra": {...}})
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _level(name: Optional[str]) -> int:
    lvl = logging.getLevelName((name or os.environ.get("LOG_LEVEL") or "INFO").upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def adopt_uvicorn_loggers() -> None:
    """Route uvicorn's server and access records through the root JSON handler."""
    for name in UVICORN_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logger once with JSON formatting.
    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (e.g., DEBUG/INFO/WARNING/ERROR)
      - default INFO

    Once configured, later calls only apply an explicit `level`, so a
    config-file level still wins over the import-time default.
    """
    root = logging.getLogger()
    if getattr(root, "_nft_metadata_configured", False):
        if level:
            root.setLevel(_level(level))
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_level(level))
    adopt_uvicorn_loggers()
    root._nft_metadata_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)
