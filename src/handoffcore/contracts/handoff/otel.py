"""
OTel span event emission helpers for handoff contract validation.

Events are attached to whatever span is current, normally the
``handoff.validate`` / ``handoff.complete`` spans opened by the
validator.

Usage::

    from handoffcore.contracts.handoff.otel import emit_phase_outcome

    emit_phase_outcome(ValidationPhase.PRECONDITIONS, outcome, validation_id)
"""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry import trace as otel_trace

from handoffcore.contracts.handoff.schema import ConditionResult, ValidationOutcome
from handoffcore.contracts.types import ValidationPhase

logger = logging.getLogger(__name__)


def add_span_event(
    name: str, attributes: dict[str, str | int | float | bool]
) -> None:
    """Add an event to the current span if it is recording."""
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)


def emit_condition_result(result: ConditionResult) -> None:
    """Emit a span event for one executed condition.

    Event name: ``handoff.contract.condition``
    """
    attrs: dict[str, str | int | float | bool] = {
        "condition.name": result.name,
        "condition.passed": result.passed,
        "condition.critical": result.critical,
        "condition.duration_ms": result.duration,
    }
    if not result.passed and result.error_message:
        attrs["condition.error_message"] = result.error_message
    if result.error:
        attrs["condition.error"] = result.error

    add_span_event("handoff.contract.condition", attrs)


def emit_phase_outcome(
    phase: ValidationPhase,
    outcome: ValidationOutcome,
    validation_id: str,
) -> None:
    """Emit a span event summarising a pre/postcondition phase.

    Event name: ``handoff.contract.phase``
    """
    attrs: dict[str, str | int | float | bool] = {
        "handoff.validation_id": validation_id,
        "phase.name": phase.value,
        "phase.passed": outcome.passed,
        "phase.conditions_run": len(outcome.results),
        "phase.failures": len(outcome.failures),
        "phase.critical_failures": len(outcome.critical_failures),
    }

    if outcome.passed:
        logger.debug(
            "Phase %s passed for %s: %d condition(s), %d non-critical failure(s)",
            phase.value,
            validation_id,
            len(outcome.results),
            len(outcome.failures),
        )
    else:
        logger.info(
            "Phase %s FAILED for %s: critical=%s",
            phase.value,
            validation_id,
            [r.name for r in outcome.critical_failures],
        )

    add_span_event("handoff.contract.phase", attrs)


def emit_rollback(rollback: Any, reason: str) -> None:
    """Emit a span event for a rollback attempt.

    Event name: ``handoff.contract.rollback``
    """
    attrs: dict[str, str | int | float | bool] = {"rollback.trigger": reason}
    if isinstance(rollback, dict):
        rolled_back = rollback.get("rolled_back")
        if isinstance(rolled_back, bool):
            attrs["rollback.rolled_back"] = rolled_back
        if rollback.get("error") is not None:
            attrs["rollback.error"] = str(rollback["error"])
        if rollback.get("reason") is not None:
            attrs["rollback.reason"] = str(rollback["reason"])

    add_span_event("handoff.contract.rollback", attrs)
