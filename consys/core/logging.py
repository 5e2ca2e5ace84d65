from __future__ import annotations

import logging
import os

LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    global _configured

    if _configured:
        return

    level_name = (level or os.environ.get("CONSYS_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # httpx logs every request at INFO, which drowns the per-cycle summary line.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
