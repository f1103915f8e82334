"""
Pydantic v2 models for test contracts embedded in agent output.

A contract bundles ordered preconditions and postconditions with an
optional rollback procedure::

    TEST_CONTRACT: {
        "preconditions": [
            {"name": "Spec exists", "test": "data.get('spec') is not None",
             "critical": True, "errorMessage": "No spec handed over"},
        ],
        "postconditions": [],
        "rollback": lambda handoff, error: {"rolled_back": True},
    }

Condition and contract models use ``extra="forbid"`` so malformed
literals are rejected when they are decoded.  Result models are plain
data and serialise cleanly with ``model_dump(mode="json")``.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from handoffcore.contracts.types import HandoffState, ValidationPhase

DEFAULT_CONDITION_NAME = "Unnamed condition"
DEFAULT_FAILURE_MESSAGE = "Condition failed"


# ---------------------------------------------------------------------------
# Contract models
# ---------------------------------------------------------------------------


class Condition(BaseModel):
    """A single named check with a callable or string-expression test."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    name: Optional[str] = Field(None, description="Human-readable condition name")
    test: Any = Field(
        None,
        description="Callable predicate or Python expression evaluated with `data` bound",
    )
    critical: bool = Field(
        False, description="Failure blocks the rest of the phase"
    )
    error_message: Optional[str] = Field(
        None,
        alias="errorMessage",
        description="Message reported when the condition fails",
    )

    @property
    def display_name(self) -> str:
        return self.name or DEFAULT_CONDITION_NAME

    @field_serializer("test")
    def _serialize_test(self, test: Any) -> Any:
        if callable(test):
            return f"<callable {getattr(test, '__name__', type(test).__name__)}>"
        return test


class Contract(BaseModel):
    """Preconditions, postconditions and an optional rollback procedure."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    preconditions: Optional[list[Condition]] = None
    postconditions: Optional[list[Condition]] = None
    rollback: Optional[Callable[..., Any]] = Field(
        None, description="Called as rollback(handoff_data, error)"
    )

    @classmethod
    def coerce(cls, value: "Contract | Mapping[str, Any]") -> "Contract":
        """Return ``value`` as a ``Contract``, validating mappings.

        Raises:
            pydantic.ValidationError: If the mapping has the wrong shape.
        """
        if isinstance(value, Contract):
            return value
        return cls.model_validate(dict(value))

    @field_serializer("rollback")
    def _serialize_rollback(self, rollback: Optional[Callable[..., Any]]) -> Optional[str]:
        if rollback is None:
            return None
        return f"<callable {getattr(rollback, '__name__', type(rollback).__name__)}>"


def is_valid_contract(contract: Any) -> bool:
    """True if ``contract`` declares preconditions or postconditions as a list.

    Empty lists still count as declared.  Accepts raw mappings (as decoded
    from a literal) and ``Contract`` instances.
    """
    if isinstance(contract, Contract):
        return contract.preconditions is not None or contract.postconditions is not None
    if not isinstance(contract, Mapping):
        return False
    return isinstance(contract.get("preconditions"), list) or isinstance(
        contract.get("postconditions"), list
    )


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class ConditionResult(BaseModel):
    """Outcome of executing one condition."""

    model_config = ConfigDict(extra="forbid")

    name: str
    passed: bool
    duration: float = Field(0.0, description="Elapsed wall-clock time in ms")
    critical: bool = False
    error_message: Optional[str] = None
    error: Optional[str] = Field(
        None, description="Exception message, only set when the test raised"
    )


class ValidationOutcome(BaseModel):
    """Outcome of running an ordered list of conditions."""

    model_config = ConfigDict(extra="forbid")

    passed: bool = True
    results: list[ConditionResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[ConditionResult]:
        return [r for r in self.results if not r.passed]

    @property
    def critical_failures(self) -> list[ConditionResult]:
        return [r for r in self.results if not r.passed and r.critical]


class HandoffValidationRecord(BaseModel):
    """History entry appended after every handoff validation attempt."""

    model_config = ConfigDict(extra="forbid")

    validation_id: str
    from_agent: str
    to_agent: str
    timestamp: str = Field(..., description="ISO 8601, UTC")
    duration: float = Field(..., description="Elapsed time in ms")


class HandoffValidationResult(BaseModel):
    """Returned by ``validate_handoff``."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    validation_id: str
    success: bool
    state: HandoffState
    phase: Optional[ValidationPhase] = None
    contract: Optional[Contract] = Field(None, exclude=True, repr=False)
    preconditions: Optional[ValidationOutcome] = None
    rollback: Optional[Any] = None
    error: Optional[str] = None
    duration: float = 0.0


class CompletionResult(BaseModel):
    """Returned by ``validate_completion``."""

    model_config = ConfigDict(extra="forbid")

    validation_id: str
    success: bool
    phase: Optional[ValidationPhase] = None
    postconditions: Optional[ValidationOutcome] = None
    rollback: Optional[Any] = None
    error: Optional[str] = None


class ValidationStats(BaseModel):
    """Aggregate view over the validation history."""

    model_config = ConfigDict(extra="forbid")

    total_validations: int = 0
    average_duration: int = Field(0, description="Mean duration in ms, rounded")
    recent_validations: list[HandoffValidationRecord] = Field(default_factory=list)
