"""Shared fixtures for the ConSys test suite."""

from __future__ import annotations

import pytest

from consys.core.config import AdvisoryConfig, BackendType, Settings


@pytest.fixture
def advisory_config() -> AdvisoryConfig:
    return AdvisoryConfig(
        backend_type=BackendType.EXTERNAL_PROCESS,
        timeout_seconds=5,
        retry_count=2,
        confidence_threshold=0.7,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(log_path=tmp_path / "metrics.ndjson", interval_seconds=1, history_size=10)
