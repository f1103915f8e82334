"""
Shared enums for handoff contract validation.
"""

from __future__ import annotations

from enum import Enum


class ValidationPhase(str, Enum):
    """Which set of conditions a validation step ran."""

    PRECONDITIONS = "preconditions"
    POSTCONDITIONS = "postconditions"


class HandoffState(str, Enum):
    """Lifecycle of a single ``validate_handoff`` call.

    ``START -> PARSED -> PRECONDITIONS_CHECKED`` then one terminal state.
    ``NO_CONTRACT`` is terminal and reached straight from ``START`` when the
    agent output carries no usable contract.
    """

    START = "start"
    PARSED = "parsed"
    PRECONDITIONS_CHECKED = "preconditions_checked"
    READY = "ready"
    ROLLED_BACK = "rolled_back"
    NO_CONTRACT = "no_contract"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (
            HandoffState.READY,
            HandoffState.ROLLED_BACK,
            HandoffState.NO_CONTRACT,
            HandoffState.ERROR,
        )
