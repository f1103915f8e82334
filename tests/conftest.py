"""
Pytest configuration and fixtures for handoffcore tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Generator

import pytest

from handoffcore.config import reset_config
from handoffcore.contracts.handoff import TestContractValidator
from handoffcore.logger import close_validation_logger


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Keep DEBUG and HANDOFFCORE_* variables from leaking into tests."""
    original: Dict[str, str] = {
        key: value
        for key, value in os.environ.items()
        if key == "DEBUG" or key.startswith("HANDOFFCORE_")
    }
    for key in original:
        os.environ.pop(key)
    reset_config()

    yield

    for key in [k for k in os.environ if k == "DEBUG" or k.startswith("HANDOFFCORE_")]:
        os.environ.pop(key)
    os.environ.update(original)
    reset_config()


# ============================================================================
# Validator Fixtures
# ============================================================================


@pytest.fixture
def log_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Per-test validation log file."""
    path = tmp_path / "contract-validation.log"
    yield path
    close_validation_logger(str(path))


@pytest.fixture
def validator(log_file: Path) -> TestContractValidator:
    """Validator writing to a temporary log file."""
    return TestContractValidator(log_file=str(log_file), timeout_ms=2000)


# ============================================================================
# Agent Output Fixtures
# ============================================================================


@pytest.fixture
def passing_agent_output() -> str:
    """Agent output whose contract passes for dict handoff data."""
    return """
FEATURE COMPLETE: Login system implemented

TEST_CONTRACT: {
    "preconditions": [
        {
            "name": "Implementation exists",
            "test": lambda data: isinstance(data, dict),
            "critical": True,
            "errorMessage": "No implementation data provided",
        }
    ],
    "postconditions": [
        {
            "name": "Output validation",
            "test": lambda result: bool(result) and isinstance(result, dict),
            "critical": False,
            "errorMessage": "Invalid output format",
        }
    ],
    "rollback": lambda handoff, error: {
        "rolled_back": True,
        "reason": str(error),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    },
}

Handoff ready for next agent.
"""


@pytest.fixture
def failing_agent_output() -> str:
    """Agent output whose only critical precondition fails."""
    return """
TASK COMPLETE

TEST_CONTRACT: {
    "preconditions": [
        {
            "name": "Spec handed over",
            "test": "data.get('spec') is not None",
            "critical": True,
            "errorMessage": "Critical validation failure",
        }
    ],
    "rollback": lambda handoff, error: {
        "rolled_back": True,
        "reason": str(error),
        "actions_taken": ["cleanup_files", "reset_state"],
    },
}
"""
