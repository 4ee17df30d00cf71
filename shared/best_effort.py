"""
Runner for side effects that must never fail the primary operation.

Inventory restoration and customer notification happen after money has
already moved. A failure there is logged and counted, then reported back as
a `BestEffortResult` so callers (and tests) can see what happened without
the primary operation being affected.
"""
from dataclasses import dataclass
from typing import Any, Awaitable

import structlog

from shared.observability.metrics import ecomm_best_effort_failures_total

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BestEffortResult:
    name: str
    ok: bool
    value: Any = None
    error: str | None = None


async def run_best_effort(name: str, action: Awaitable[Any]) -> BestEffortResult:
    try:
        value = await action
    except Exception as e:
        # A failing side effect MUST NOT block the operation that triggered it
        logger.error("best_effort_failed", side_effect=name, error=str(e))
        ecomm_best_effort_failures_total.labels(side_effect=name).inc()
        return BestEffortResult(name=name, ok=False, error=str(e))
    return BestEffortResult(name=name, ok=True, value=value)
