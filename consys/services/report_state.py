from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from consys.analysis.health import HealthReport


@dataclass
class ReportState:
    latest: HealthReport | None = None
    cycles: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
