"""
Exception taxonomy for handoff contract validation.

Only the parser and the evaluator raise these internally; the public
validator entry points convert every failure into a result object.
"""

from __future__ import annotations

from typing import Optional


class HandoffContractError(Exception):
    """Base class for all handoff contract errors."""


class ContractParseError(HandoffContractError):
    """The embedded contract literal could not be delimited or decoded."""


class UnsafeExpressionError(HandoffContractError, ValueError):
    """An expression uses syntax the restricted evaluator does not allow."""


class ModuleNotAllowedError(HandoffContractError, ImportError):
    """Contract code asked ``require()`` for a module outside the allow-list."""

    def __init__(self, module: str) -> None:
        self.module = module
        super().__init__(f"Module {module} not allowed")


class ContractViolationError(HandoffContractError):
    """Synthetic error handed to a rollback procedure when a phase fails."""

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        self.phase = phase
        super().__init__(message)
