from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from consys.advisory.backends import AdvisoryBackend, build_backend
from consys.api.routes import router as api_router
from consys.core.config import APP_NAME, AdvisoryConfig, Settings
from consys.core.config import load_advisory_config, load_settings
from consys.core.logging import setup_logging
from consys.services.report_state import ReportState
from consys.services.scheduler import SamplingScheduler

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    advisory_config: AdvisoryConfig | None = None,
    *,
    backend: AdvisoryBackend | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    setup_logging()
    settings = settings or load_settings()
    advisory_config = advisory_config or load_advisory_config()
    if backend is None:
        backend = build_backend(advisory_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler: SamplingScheduler | None = None
        if start_scheduler:
            scheduler = SamplingScheduler(
                settings,
                advisory_config,
                backend=backend,
                report_state=app.state.report_state,
            )
            scheduler.start()
        app.state.scheduler = scheduler
        logger.info(
            "%s started log=%s interval=%ss advisory=%s",
            APP_NAME,
            settings.log_path,
            settings.interval_seconds,
            advisory_config.to_dict(),
        )
        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()
            logger.info("%s stopped", APP_NAME)

    app = FastAPI(title=APP_NAME, lifespan=lifespan)
    app.include_router(api_router)
    app.state.settings = settings
    app.state.advisory_config = advisory_config
    app.state.backend = backend
    app.state.report_state = ReportState()
    return app
