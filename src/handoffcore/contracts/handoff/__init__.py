"""
Test-contract validation for agent handoffs.

Parses ``TEST_CONTRACT:`` blocks out of agent output, runs their
preconditions and postconditions with short-circuit on critical failure,
and drives the contract's rollback procedure when a phase fails.

Public API::

    from handoffcore.contracts.handoff import (
        # Validator
        TestContractValidator,
        # Parsing / evaluation
        ContractParser,
        parse_contract,
        find_contract_literal,
        RestrictedEvaluator,
        # Execution
        ConditionExecutor,
        # Models
        Contract,
        Condition,
        ConditionResult,
        ValidationOutcome,
        HandoffValidationRecord,
        HandoffValidationResult,
        CompletionResult,
        ValidationStats,
        is_valid_contract,
        # Serialization
        format_contract,
    )
"""

from handoffcore.contracts.handoff.evaluator import RestrictedEvaluator
from handoffcore.contracts.handoff.executor import ConditionExecutor
from handoffcore.contracts.handoff.parser import (
    CONTRACT_MARKER,
    ContractParser,
    find_contract_literal,
    parse_contract,
)
from handoffcore.contracts.handoff.schema import (
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
from handoffcore.contracts.handoff.serializer import format_contract
from handoffcore.contracts.handoff.validator import TestContractValidator

__all__ = [
    # Validator
    "TestContractValidator",
    # Parsing / evaluation
    "CONTRACT_MARKER",
    "ContractParser",
    "parse_contract",
    "find_contract_literal",
    "RestrictedEvaluator",
    # Execution
    "ConditionExecutor",
    # Models
    "Contract",
    "Condition",
    "ConditionResult",
    "ValidationOutcome",
    "HandoffValidationRecord",
    "HandoffValidationResult",
    "CompletionResult",
    "ValidationStats",
    "is_valid_contract",
    # Serialization
    "format_contract",
]
