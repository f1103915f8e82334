"""
Contract validation for agent-to-agent handoffs.

Sub-packages:

- ``handoff``: test contracts embedded in agent output (parse, run
  pre/postconditions, roll back).  Import from
  ``handoffcore.contracts.handoff``.

Shared modules: ``types`` (enums), ``errors`` (exception taxonomy),
``timeouts`` (defaults).
"""

from handoffcore.contracts.errors import (
    ContractParseError,
    ContractViolationError,
    HandoffContractError,
    ModuleNotAllowedError,
    UnsafeExpressionError,
)
from handoffcore.contracts.types import HandoffState, ValidationPhase

__all__ = [
    # Errors
    "HandoffContractError",
    "ContractParseError",
    "ContractViolationError",
    "ModuleNotAllowedError",
    "UnsafeExpressionError",
    # Types
    "HandoffState",
    "ValidationPhase",
]
