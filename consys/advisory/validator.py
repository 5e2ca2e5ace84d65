from __future__ import annotations

import logging
from typing import Any, Mapping

from consys.core.config import AdvisoryConfig
from consys.core.models import ActionType, AdvisoryResponse, Priority

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("confidence", "category", "actions", "reasoning")
ACTION_FIELDS: tuple[str, ...] = ("type", "category", "description", "parameters", "priority")

ACTION_TYPES: frozenset[str] = frozenset(t.value for t in ActionType)
PRIORITIES: frozenset[str] = frozenset(p.value for p in Priority)

SAFE_ACTION_TYPES: frozenset[str] = frozenset({ActionType.NOTIFY.value, ActionType.ADJUST.value})
SAFE_CATEGORIES: frozenset[str] = frozenset({"performance", "resource", "thermal", "maintenance"})
DANGEROUS_SUBSTRINGS: tuple[str, ...] = ("delete", "format", "shutdown")

LOW_CONFIDENCE_CATEGORY: str = "low_confidence"


def _action_problem(action: Any) -> str | None:
    if not isinstance(action, Mapping):
        return "action is not an object"
    missing = [f for f in ACTION_FIELDS if f not in action]
    if missing:
        return f"action missing {', '.join(missing)}"
    if action["type"] not in ACTION_TYPES:
        return f"action type {action['type']!r} not allowed"
    if action["priority"] not in PRIORITIES:
        return f"action priority {action['priority']!r} not allowed"
    if not isinstance(action["category"], str) or not isinstance(action["description"], str):
        return "action category and description must be strings"
    if action["parameters"] is not None and not isinstance(action["parameters"], Mapping):
        return "action parameters must be an object"
    return None


def validate(response: Any) -> bool:
    """Check a raw backend response against the advisory schema.

    Any problem rejects the whole response; nothing is repaired.
    """
    if not isinstance(response, Mapping):
        logger.warning("Rejected advisory response: not an object")
        return False

    missing = [f for f in REQUIRED_FIELDS if f not in response]
    if missing:
        logger.warning("Rejected advisory response: missing %s", ", ".join(missing))
        return False

    confidence = response["confidence"]
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        logger.warning("Rejected advisory response: confidence %r is not a number", confidence)
        return False
    if not 0.0 <= confidence <= 1.0:
        logger.warning("Rejected advisory response: confidence %s outside [0, 1]", confidence)
        return False

    if not isinstance(response["category"], str) or not isinstance(response["reasoning"], str):
        logger.warning("Rejected advisory response: category and reasoning must be strings")
        return False

    actions = response["actions"]
    if not isinstance(actions, (list, tuple)):
        logger.warning("Rejected advisory response: actions is not a list")
        return False
    for index, action in enumerate(actions):
        problem = _action_problem(action)
        if problem:
            logger.warning("Rejected advisory response: actions[%d]: %s", index, problem)
            return False

    metadata = response.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        logger.warning("Rejected advisory response: metadata is not an object")
        return False
    return True


def _is_safe(action) -> bool:
    if action.type.value not in SAFE_ACTION_TYPES:
        return False
    if action.category not in SAFE_CATEGORIES:
        return False
    return not any(word in action.description for word in DANGEROUS_SUBSTRINGS)


def filter_response(response: AdvisoryResponse, config: AdvisoryConfig) -> AdvisoryResponse:
    if response.confidence < config.confidence_threshold:
        return AdvisoryResponse(
            confidence=response.confidence,
            category=LOW_CONFIDENCE_CATEGORY,
            actions=(),
            reasoning=(
                f"Confidence {response.confidence:.2f} is below the threshold "
                f"{config.confidence_threshold:.2f}; no actions recommended"
            ),
            metadata=dict(response.metadata),
        )

    safe = tuple(a for a in response.actions if _is_safe(a))
    dropped = len(response.actions) - len(safe)
    if dropped:
        logger.info("Safety filter dropped %d of %d action(s)", dropped, len(response.actions))
    return AdvisoryResponse(
        confidence=response.confidence,
        category=response.category,
        actions=safe,
        reasoning=response.reasoning,
        metadata=dict(response.metadata),
    )
