"""
Test-contract validation for agent handoffs.

``TestContractValidator`` gates the transfer of work from one agent to
the next.  The producing agent embeds a ``TEST_CONTRACT:`` block in its
output; the validator parses it, runs the preconditions against the
handoff data and either clears the handoff or rolls it back.
Postconditions run later, through ``validate_completion``, once the
receiving agent has produced its result.

Handoff states::

    START -> PARSED -> PRECONDITIONS_CHECKED -> READY | ROLLED_BACK
    START -> NO_CONTRACT
    any   -> ERROR

None of the public entry points raise.  Every failure comes back as a
structured result the orchestrator can act on.  The validator never
retries on its own.

Usage::

    from handoffcore.contracts.handoff import TestContractValidator

    validator = TestContractValidator(log_file="/tmp/handoff.log")
    result = await validator.validate_handoff(
        "research-agent", "implementation-agent", agent_output, handoff_data
    )
    if result.success:
        agent_result = await run_next_agent(handoff_data)
        completion = await validator.validate_completion(
            result.validation_id, agent_result, result.contract
        )
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from handoffcore.config import ValidatorConfig
from handoffcore.contracts.errors import ContractViolationError
from handoffcore.contracts.handoff.evaluator import RestrictedEvaluator
from handoffcore.contracts.handoff.executor import (
    TIMED_OUT,
    ConditionExecutor,
    call_with_timeout,
)
from handoffcore.contracts.handoff.otel import (
    emit_condition_result,
    emit_phase_outcome,
    emit_rollback,
)
from handoffcore.contracts.handoff.parser import ContractParser
from handoffcore.contracts.handoff.schema import (
    DEFAULT_CONDITION_NAME,
    CompletionResult,
    Condition,
    ConditionResult,
    Contract,
    HandoffValidationRecord,
    HandoffValidationResult,
    ValidationOutcome,
    ValidationStats,
    is_valid_contract,
)
from handoffcore.contracts.types import HandoffState, ValidationPhase
from handoffcore.logger import get_validation_logger

NO_CONTRACT_ERROR = "No valid contract found in agent output"
NO_ROLLBACK_REASON = "No rollback function"

# camelCase option names accepted alongside the config field names
OPTION_ALIASES = {
    "timeout": "timeout_ms",
    "logFile": "log_file",
    "maxRetries": "max_retries",
}


def generate_validation_id() -> str:
    """Return ``validation_<epoch ms>_<9 hex chars>``."""
    return f"validation_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class TestContractValidator:
    """Parses test contracts, runs their conditions and drives rollback."""

    # Not a pytest test class despite the name
    __test__ = False

    def __init__(self, config: Optional[ValidatorConfig] = None, **options: Any) -> None:
        """
        Initialize the validator.

        Args:
            config: Explicit configuration. When omitted, one is built from
                ``options`` layered over environment variables and defaults.
            **options: ``ValidatorConfig`` fields such as ``timeout_ms``,
                ``log_file`` or ``max_retries``. The camelCase names
                ``timeout``, ``logFile`` and ``maxRetries`` are accepted too.

        Raises:
            TypeError: For an option that names no configuration field.
        """
        options = _normalize_options(options)
        if config is None:
            config = ValidatorConfig(**options)
        elif options:
            config = config.model_copy(update=options)
        self.config = config

        self._log = get_validation_logger(config.log_file, debug=config.debug)
        self._evaluator = RestrictedEvaluator(
            allowed_modules=config.allowed_modules,
            module_root=config.module_root,
        )
        self._parser = ContractParser(self._evaluator, log=self._log)
        self._executor = ConditionExecutor(self._evaluator, timeout_s=config.timeout_s)
        self.tracer = trace.get_tracer("handoffcore.handoff")

        self._history: deque[HandoffValidationRecord] = deque(maxlen=config.history_limit)
        self._history_lock = threading.Lock()
        self._total_validations = 0
        self._total_duration = 0.0

    # -- parsing ---------------------------------------------------------------

    def parse_contract(self, agent_output: str) -> Optional[Contract]:
        """Parse the ``TEST_CONTRACT:`` block in ``agent_output``. Never raises."""
        return self._parser.parse(agent_output)

    @staticmethod
    def is_valid_contract(contract: Any) -> bool:
        """True if ``contract`` declares preconditions or postconditions as a list."""
        return is_valid_contract(contract)

    # -- conditions ------------------------------------------------------------

    async def execute_condition(self, condition: Condition | Mapping[str, Any], *args: Any) -> ConditionResult:
        """Execute a single condition. Never raises."""
        if not isinstance(condition, Condition):
            try:
                condition = Condition.model_validate(dict(condition))
            except (ValidationError, TypeError, ValueError) as exc:
                return _malformed_condition_result(condition, exc)
        return await self._executor.execute_condition(condition, *args)

    async def execute_preconditions(
        self, contract: Contract | Mapping[str, Any], handoff_data: Any
    ) -> ValidationOutcome:
        """Validate the previous agent's work against the preconditions."""
        contract = Contract.coerce(contract)
        return await self._executor.run_conditions(contract.preconditions, handoff_data)

    async def execute_postconditions(
        self,
        contract: Contract | Mapping[str, Any],
        result: Any,
        handoff_data: Any = None,
    ) -> ValidationOutcome:
        """Validate the receiving agent's result against the postconditions."""
        contract = Contract.coerce(contract)
        if handoff_data is None:
            handoff_data = {}
        return await self._executor.run_conditions(
            contract.postconditions, result, handoff_data
        )

    # -- rollback --------------------------------------------------------------

    async def execute_rollback(
        self,
        contract: Contract | Mapping[str, Any],
        handoff_data: Any,
        error: BaseException,
    ) -> Any:
        """Run the contract's rollback procedure and return its result verbatim.

        Returns ``{"rolled_back": False, "reason": "No rollback function"}``
        when the contract defines none, and ``{"rolled_back": False,
        "error": <message>}`` when the procedure raises or times out.
        Never raises.
        """
        rollback = _rollback_of(contract)
        if rollback is None:
            self._log.info("No rollback defined for failed handoff: %s", error)
            outcome: Any = {"rolled_back": False, "reason": NO_ROLLBACK_REASON}
            emit_rollback(outcome, str(error))
            return outcome

        try:
            outcome = await call_with_timeout(
                rollback, (handoff_data, error), self.config.timeout_s
            )
        except asyncio.TimeoutError:
            self._log.warning("Rollback failed: %s", TIMED_OUT)
            outcome = {"rolled_back": False, "error": TIMED_OUT}
        except Exception as exc:
            self._log.warning("Rollback failed: %s", exc)
            outcome = {"rolled_back": False, "error": str(exc)}
        else:
            self._log.info("Rollback executed: %s", json.dumps(outcome, default=str))

        emit_rollback(outcome, str(error))
        return outcome

    # -- workflow --------------------------------------------------------------

    async def validate_handoff(
        self,
        from_agent: str,
        to_agent: str,
        agent_output: str,
        handoff_data: Any,
    ) -> HandoffValidationResult:
        """Gate a handoff on the contract embedded in ``agent_output``.

        Postconditions are not evaluated here; the receiving agent has not
        produced anything yet.  One history record is appended whatever
        the outcome.
        """
        validation_id = generate_validation_id()
        start = time.perf_counter()
        state = HandoffState.START

        self._log.info(
            "Starting handoff validation: %s -> %s (%s)",
            from_agent,
            to_agent,
            validation_id,
        )

        with self.tracer.start_as_current_span("handoff.validate") as span:
            span.set_attribute("handoff.validation_id", validation_id)
            span.set_attribute("handoff.from_agent", str(from_agent))
            span.set_attribute("handoff.to_agent", str(to_agent))
            try:
                contract = self.parse_contract(agent_output)
                if contract is None:
                    state = HandoffState.NO_CONTRACT
                    span.set_status(Status(StatusCode.ERROR, NO_CONTRACT_ERROR))
                    return HandoffValidationResult(
                        validation_id=validation_id,
                        success=False,
                        state=state,
                        error=NO_CONTRACT_ERROR,
                        duration=_elapsed_ms(start),
                    )
                state = HandoffState.PARSED

                preconditions = await self.execute_preconditions(contract, handoff_data)
                state = HandoffState.PRECONDITIONS_CHECKED
                emit_phase_outcome(ValidationPhase.PRECONDITIONS, preconditions, validation_id)

                if not preconditions.passed:
                    rollback = await self.execute_rollback(
                        contract,
                        handoff_data,
                        ContractViolationError(
                            "Precondition validation failed",
                            phase=ValidationPhase.PRECONDITIONS.value,
                        ),
                    )
                    state = HandoffState.ROLLED_BACK
                    span.set_status(Status(StatusCode.ERROR, "Precondition validation failed"))
                    return HandoffValidationResult(
                        validation_id=validation_id,
                        success=False,
                        state=state,
                        phase=ValidationPhase.PRECONDITIONS,
                        preconditions=preconditions,
                        rollback=rollback,
                        duration=_elapsed_ms(start),
                    )

                state = HandoffState.READY
                span.set_status(Status(StatusCode.OK))
                return HandoffValidationResult(
                    validation_id=validation_id,
                    success=True,
                    state=state,
                    contract=contract,
                    preconditions=preconditions,
                    duration=_elapsed_ms(start),
                )
            except Exception as exc:
                self._log.error("Handoff validation error: %s", exc)
                state = HandoffState.ERROR
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                return HandoffValidationResult(
                    validation_id=validation_id,
                    success=False,
                    state=state,
                    error=str(exc),
                    duration=_elapsed_ms(start),
                )
            finally:
                span.set_attribute("handoff.state", state.value)
                self._record(
                    HandoffValidationRecord(
                        validation_id=validation_id,
                        from_agent=str(from_agent),
                        to_agent=str(to_agent),
                        timestamp=datetime.now(timezone.utc).isoformat(),
                        duration=_elapsed_ms(start),
                    )
                )

    async def validate_completion(
        self,
        validation_id: str,
        agent_result: Any,
        contract: Optional[Contract | Mapping[str, Any]],
        handoff_data: Any = None,
    ) -> CompletionResult:
        """Check the receiving agent's result against the postconditions.

        Rolls back with a "Postcondition validation failed" error when a
        critical postcondition fails.  Never raises.
        """
        self._log.info("Validating completion for %s", validation_id)
        if handoff_data is None:
            handoff_data = {}

        with self.tracer.start_as_current_span("handoff.complete") as span:
            span.set_attribute("handoff.validation_id", str(validation_id))
            try:
                if contract is None:
                    raise ValueError("No contract supplied for completion check")

                postconditions = await self.execute_postconditions(
                    contract, agent_result, handoff_data
                )
                emit_phase_outcome(ValidationPhase.POSTCONDITIONS, postconditions, validation_id)

                if not postconditions.passed:
                    rollback = await self.execute_rollback(
                        contract,
                        handoff_data,
                        ContractViolationError(
                            "Postcondition validation failed",
                            phase=ValidationPhase.POSTCONDITIONS.value,
                        ),
                    )
                    span.set_status(Status(StatusCode.ERROR, "Postcondition validation failed"))
                    return CompletionResult(
                        validation_id=validation_id,
                        success=False,
                        phase=ValidationPhase.POSTCONDITIONS,
                        postconditions=postconditions,
                        rollback=rollback,
                    )

                span.set_status(Status(StatusCode.OK))
                return CompletionResult(
                    validation_id=validation_id,
                    success=True,
                    postconditions=postconditions,
                )
            except Exception as exc:
                self._log.error("Completion validation error: %s", exc)
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                return CompletionResult(
                    validation_id=validation_id,
                    success=False,
                    error=str(exc),
                )

    # -- statistics ------------------------------------------------------------

    @property
    def history(self) -> list[HandoffValidationRecord]:
        with self._history_lock:
            return list(self._history)

    def get_validation_stats(self) -> ValidationStats:
        """Aggregate count, mean duration and the most recent records."""
        with self._history_lock:
            total = self._total_validations
            average = self._total_duration / total if total else 0.0
            recent = list(self._history)[-self.config.recent_window :]

        return ValidationStats(
            total_validations=total,
            average_duration=round(average),
            recent_validations=recent,
        )

    def reset_history(self) -> None:
        """Clear the history and the running totals."""
        with self._history_lock:
            self._history.clear()
            self._total_validations = 0
            self._total_duration = 0.0

    # -- internal --------------------------------------------------------------

    def _record(self, record: HandoffValidationRecord) -> None:
        with self._history_lock:
            self._history.append(record)
            self._total_validations += 1
            self._total_duration += record.duration


def _rollback_of(contract: Contract | Mapping[str, Any]) -> Any:
    if isinstance(contract, Contract):
        return contract.rollback
    if isinstance(contract, Mapping):
        return contract.get("rollback")
    return None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _normalize_options(options: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in options.items():
        field = OPTION_ALIASES.get(key, key)
        if field not in ValidatorConfig.model_fields:
            raise TypeError(f"Unknown validator option: {key!r}")
        normalized[field] = value
    return normalized


def _malformed_condition_result(condition: Any, exc: Exception) -> ConditionResult:
    """Failing result for a condition mapping that does not validate."""
    name = DEFAULT_CONDITION_NAME
    critical = False
    if isinstance(condition, Mapping):
        if isinstance(condition.get("name"), str) and condition["name"]:
            name = condition["name"]
        critical = condition.get("critical") is True

    message = str(exc) or type(exc).__name__
    result = ConditionResult(
        name=name,
        passed=False,
        critical=critical,
        error_message=message,
        error=message,
    )
    emit_condition_result(result)
    return result
