"""
Condition execution and the shared pre/postcondition runner.

``execute_condition`` never raises: exceptions, timeouts and invalid
tests all become a failing ``ConditionResult``.

``run_conditions`` walks conditions strictly left to right.  A later
condition never starts before the earlier one resolved, and the walk
stops at the first failing *critical* condition.  Non-critical failures
are recorded but never fail the outcome.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Iterable, Optional, Sequence

from handoffcore.contracts.handoff.evaluator import RestrictedEvaluator
from handoffcore.contracts.handoff.otel import emit_condition_result
from handoffcore.contracts.handoff.schema import (
    DEFAULT_FAILURE_MESSAGE,
    Condition,
    ConditionResult,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

TIMED_OUT = "timed out"


class InvalidTestError(TypeError):
    """A condition's ``test`` is neither callable nor a string."""


def bind_positional(func: Callable[..., Any], args: Sequence[Any]) -> tuple[Any, ...]:
    """Trim ``args`` to the number of positional parameters ``func`` accepts.

    A predicate written as ``lambda result: ...`` can then be used as a
    postcondition, which is called with ``(result, handoff_data)``.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return tuple(args)

    count = 0
    for param in signature.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return tuple(args)
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return tuple(args[:count])


async def call_with_timeout(
    func: Callable[..., Any],
    args: Sequence[Any],
    timeout_s: Optional[float],
) -> Any:
    """Call ``func`` and await the result if it is awaitable.

    Only the awaited part is bounded by ``timeout_s``; a synchronous call
    runs to completion.

    Raises:
        asyncio.TimeoutError: If the awaited result does not resolve in time.
    """
    value = func(*bind_positional(func, args))
    if inspect.isawaitable(value):
        value = await asyncio.wait_for(value, timeout=timeout_s)
    return value


class ConditionExecutor:
    """Runs conditions against handoff data or agent results."""

    def __init__(
        self,
        evaluator: Optional[RestrictedEvaluator] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self._evaluator = evaluator or RestrictedEvaluator()
        self._timeout_s = timeout_s

    async def execute_condition(self, condition: Condition, *args: Any) -> ConditionResult:
        """Execute one condition's test. Never raises."""
        start = time.perf_counter()
        try:
            value = await self._run_test(condition.test, args)
            passed = bool(value)
        except asyncio.TimeoutError:
            result = ConditionResult(
                name=condition.display_name,
                passed=False,
                duration=_elapsed_ms(start),
                critical=condition.critical,
                error_message=TIMED_OUT,
                error=TIMED_OUT,
            )
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            result = ConditionResult(
                name=condition.display_name,
                passed=False,
                duration=_elapsed_ms(start),
                critical=condition.critical,
                error_message=condition.error_message or message,
                error=message,
            )
        else:
            result = ConditionResult(
                name=condition.display_name,
                passed=passed,
                duration=_elapsed_ms(start),
                critical=condition.critical,
                error_message=condition.error_message or DEFAULT_FAILURE_MESSAGE,
            )

        if result.passed:
            logger.debug("Condition '%s' passed in %.2fms", result.name, result.duration)
        else:
            logger.debug(
                "Condition '%s' failed (critical=%s): %s",
                result.name,
                result.critical,
                result.error or result.error_message,
            )
        emit_condition_result(result)
        return result

    async def run_conditions(
        self, conditions: Optional[Iterable[Condition]], *args: Any
    ) -> ValidationOutcome:
        """Run ``conditions`` in order, stopping at the first critical failure."""
        outcome = ValidationOutcome(passed=True)
        for condition in conditions or ():
            result = await self.execute_condition(condition, *args)
            outcome.results.append(result)
            if not result.passed and condition.critical:
                outcome.passed = False
                break
        return outcome

    # -- internal --------------------------------------------------------------

    async def _run_test(self, test: Any, args: Sequence[Any]) -> Any:
        if callable(test):
            return await call_with_timeout(test, args, self._timeout_s)
        if isinstance(test, str):
            data = args[0] if args else None
            return self._evaluator.evaluate(test, {"data": data})
        raise InvalidTestError("Invalid test function")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
