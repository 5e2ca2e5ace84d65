from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

APP_NAME: str = "ConSys Monitor"
DATA_DIR: Path = Path.home() / ".local" / "share" / "consys"
LOG_PATH: Path = DATA_DIR / "metrics.ndjson"
LAST_SNAPSHOT_FILENAME: str = "last_snapshot.json"

SNAPSHOT_INTERVAL_SECONDS: int = 5
HISTORY_SIZE: int = 60

API_HOST: str = "127.0.0.1"
API_PORT: int = 8765

GPU_QUERY_TIMEOUT_SECONDS: float = 3.0

ADVISORY_BACKEND: str = "external_process"
ADVISORY_TIMEOUT_SECONDS: int = 10
ADVISORY_RETRY_COUNT: int = 2
ADVISORY_RETRY_DELAY_SECONDS: float = 0.0
ADVISORY_CONFIDENCE_THRESHOLD: float = 0.7

ENV_PREFIX: str = "CONSYS_"


class ConfigError(ValueError):
    pass


class BackendType(str, Enum):
    EXTERNAL_PROCESS = "external_process"
    HTTP_API = "http_api"
    LOCAL_MODEL = "local_model"


@dataclass(frozen=True, slots=True)
class AdvisoryConfig:
    backend_type: BackendType = BackendType(ADVISORY_BACKEND)
    timeout_seconds: int = ADVISORY_TIMEOUT_SECONDS
    retry_count: int = ADVISORY_RETRY_COUNT
    confidence_threshold: float = ADVISORY_CONFIDENCE_THRESHOLD
    retry_delay_seconds: float = ADVISORY_RETRY_DELAY_SECONDS
    # Only the field matching backend_type is used.
    command: str | None = None
    endpoint: str | None = None
    model: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.confidence_threshold) <= 1.0:
            raise ConfigError(
                f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}"
            )
        if self.timeout_seconds <= 0:
            raise ConfigError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.retry_count < 0:
            raise ConfigError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.retry_delay_seconds < 0:
            raise ConfigError(
                f"retry_delay_seconds must be >= 0, got {self.retry_delay_seconds}"
            )

    @property
    def target(self) -> str | None:
        if self.backend_type is BackendType.EXTERNAL_PROCESS:
            return self.command
        if self.backend_type is BackendType.HTTP_API:
            return self.endpoint
        return self.model

    def to_dict(self) -> dict[str, object]:
        return {
            "backend_type": self.backend_type.value,
            "timeout_seconds": int(self.timeout_seconds),
            "retry_count": int(self.retry_count),
            "confidence_threshold": float(self.confidence_threshold),
            "retry_delay_seconds": float(self.retry_delay_seconds),
            "target": self.target,
        }


@dataclass(frozen=True, slots=True)
class Settings:
    log_path: Path = LOG_PATH
    interval_seconds: int = SNAPSHOT_INTERVAL_SECONDS
    history_size: int = HISTORY_SIZE
    host: str = API_HOST
    port: int = API_PORT

    @property
    def last_snapshot_path(self) -> Path:
        return self.log_path.parent / LAST_SNAPSHOT_FILENAME


def _env(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(ENV_PREFIX + name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse(env: Mapping[str, str], name: str, cast, default):
    raw = _env(env, name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name}={raw!r} is not a valid {cast.__name__}") from exc


def load_advisory_config(env: Mapping[str, str] | None = None) -> AdvisoryConfig:
    """Build the process-wide advisory configuration from ``CONSYS_*`` variables.

    Called once at start-up; the returned value is passed explicitly to every
    evaluation rather than read back from module state.
    """
    env = os.environ if env is None else env

    backend_raw = _env(env, "ADVISORY_BACKEND") or ADVISORY_BACKEND
    try:
        backend_type = BackendType(backend_raw.lower())
    except ValueError as exc:
        allowed = ", ".join(b.value for b in BackendType)
        raise ConfigError(
            f"unknown advisory backend {backend_raw!r} (expected one of: {allowed})"
        ) from exc

    return AdvisoryConfig(
        backend_type=backend_type,
        timeout_seconds=_parse(env, "ADVISORY_TIMEOUT", int, ADVISORY_TIMEOUT_SECONDS),
        retry_count=_parse(env, "ADVISORY_RETRIES", int, ADVISORY_RETRY_COUNT),
        confidence_threshold=_parse(
            env, "ADVISORY_CONFIDENCE_THRESHOLD", float, ADVISORY_CONFIDENCE_THRESHOLD
        ),
        retry_delay_seconds=_parse(
            env, "ADVISORY_RETRY_DELAY", float, ADVISORY_RETRY_DELAY_SECONDS
        ),
        command=_env(env, "ADVISORY_COMMAND"),
        endpoint=_env(env, "ADVISORY_ENDPOINT"),
        model=_env(env, "ADVISORY_MODEL"),
    )


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    log_path_raw = _env(env, "LOG_PATH")
    settings = Settings(
        log_path=Path(log_path_raw).expanduser() if log_path_raw else LOG_PATH,
        interval_seconds=_parse(env, "INTERVAL", int, SNAPSHOT_INTERVAL_SECONDS),
        history_size=_parse(env, "HISTORY_SIZE", int, HISTORY_SIZE),
        host=_env(env, "HOST") or API_HOST,
        port=_parse(env, "PORT", int, API_PORT),
    )
    if settings.interval_seconds < 1:
        raise ConfigError("interval must be at least 1 second")
    if settings.history_size < 1:
        raise ConfigError("history size must be at least 1")
    return settings
