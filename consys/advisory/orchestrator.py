from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from consys.advisory.backends import AdvisoryBackend, BackendResult, try_backend
from consys.advisory.fallback import FALLBACK_CATEGORY, heuristic_response
from consys.advisory.validator import filter_response, validate
from consys.core.config import AdvisoryConfig
from consys.core.models import AdvisoryRequest, AdvisoryResponse, Snapshot, SnapshotFormatError

logger = logging.getLogger(__name__)

INVALID_REQUEST_CATEGORY: str = "invalid_request"
REQUEST_FIELDS: tuple[str, ...] = ("metrics", "history", "context")


def _invalid(reason: str) -> AdvisoryResponse:
    logger.warning("Rejected advisory request: %s", reason)
    return AdvisoryResponse(
        confidence=0.0,
        category=INVALID_REQUEST_CATEGORY,
        actions=(),
        reasoning=f"Invalid advisory request: {reason}",
        metadata={"error": INVALID_REQUEST_CATEGORY},
    )


def _as_snapshot(value: Any) -> Snapshot:
    return value if isinstance(value, Snapshot) else Snapshot.from_dict(value)


def coerce_request(request: Any) -> AdvisoryRequest | str:
    """Normalize ``request`` or return the reason it cannot be evaluated."""
    if request is None:
        return "request is empty"

    if isinstance(request, AdvisoryRequest):
        fields = {name: getattr(request, name) for name in REQUEST_FIELDS}
    elif isinstance(request, Mapping):
        fields = {name: request.get(name) for name in REQUEST_FIELDS}
    else:
        return f"unsupported request type {type(request).__name__}"

    missing = [name for name, value in fields.items() if value is None]
    if missing:
        return f"missing {', '.join(missing)}"

    if isinstance(fields["history"], (str, bytes, Mapping)):
        return "history must be a list of snapshots"
    if not isinstance(fields["context"], Mapping):
        return "context must be an object"
    try:
        metrics = _as_snapshot(fields["metrics"])
        history = tuple(_as_snapshot(s) for s in fields["history"])
    except (SnapshotFormatError, TypeError) as exc:
        return f"malformed snapshot: {exc}"

    return AdvisoryRequest(metrics=metrics, history=history, context=dict(fields["context"]))


def _attempt(
    backend: AdvisoryBackend, payload: dict[str, Any], config: AdvisoryConfig, attempt: int
) -> AdvisoryResponse | None:
    result: BackendResult = try_backend(backend, payload, config)
    if result.error is not None:
        logger.warning(
            "Advisory attempt %d/%d failed (%s): %s",
            attempt,
            config.retry_count,
            result.error.kind,
            result.error,
        )
        return None
    if result.response is None:
        logger.warning("Advisory attempt %d/%d returned nothing", attempt, config.retry_count)
        return None
    if not validate(result.response):
        return None
    return AdvisoryResponse.from_dict(result.response)


def evaluate(
    request: AdvisoryRequest | Mapping[str, Any] | None,
    config: AdvisoryConfig,
    backend: AdvisoryBackend | None = None,
    *,
    fallback_category: str = FALLBACK_CATEGORY,
    sleep: Callable[[float], None] = time.sleep,
) -> AdvisoryResponse:
    """Produce a validated, safety-filtered recommendation for one cycle.

    Order of outcomes: an ``invalid_request`` response for incomplete input;
    otherwise the first schema-valid backend answer within
    ``config.retry_count`` sequential attempts, passed through the safety
    filter; otherwise the heuristic fallback. Backend failures never escape
    this function.
    """
    normalized = coerce_request(request)
    if isinstance(normalized, str):
        return _invalid(normalized)

    if backend is None or config.retry_count == 0:
        return heuristic_response(
            normalized.metrics, category=fallback_category, reason="no backend configured"
        )

    payload = normalized.to_dict()
    for attempt in range(1, config.retry_count + 1):
        if attempt > 1 and config.retry_delay_seconds > 0:
            sleep(config.retry_delay_seconds)
        response = _attempt(backend, payload, config, attempt)
        if response is not None:
            logger.info(
                "Advisory backend=%s answered on attempt %d confidence=%.2f actions=%d",
                backend.name,
                attempt,
                response.confidence,
                len(response.actions),
            )
            return filter_response(response, config)

    logger.warning(
        "Advisory backend=%s exhausted %d attempt(s); using heuristic fallback",
        backend.name,
        config.retry_count,
    )
    return heuristic_response(
        normalized.metrics,
        category=fallback_category,
        reason=f"{config.retry_count} attempt(s) failed",
    )
