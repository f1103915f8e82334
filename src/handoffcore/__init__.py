"""
handoffcore - Test-contract validation for agent handoffs.

An agent that hands work to another agent embeds a ``TEST_CONTRACT:``
block in its output.  handoffcore parses that block, checks the
preconditions before the handoff proceeds, checks the postconditions
after the receiving agent finishes, and rolls back when a critical
check fails.

Example:
    import asyncio
    from handoffcore import TestContractValidator

    validator = TestContractValidator()
    result = asyncio.run(
        validator.validate_handoff("planner", "coder", agent_output, {"spec": spec})
    )
"""

from handoffcore.config import ValidatorConfig, get_config
from handoffcore.contracts.handoff import (
    Condition,
    Contract,
    TestContractValidator,
    format_contract,
    parse_contract,
)
from handoffcore.contracts.types import HandoffState, ValidationPhase

__version__ = "0.1.0"

__all__ = [
    "TestContractValidator",
    "Contract",
    "Condition",
    "parse_contract",
    "format_contract",
    "HandoffState",
    "ValidationPhase",
    "ValidatorConfig",
    "get_config",
    "__version__",
]
