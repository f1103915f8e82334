"""
Render a ``Contract`` back into the ``TEST_CONTRACT:`` literal format.

Only contracts whose tests are string expressions can be rendered;
callables have no faithful source form, so they raise ``ValueError``.
Agents that build contracts programmatically can use this to embed them
in their output.
"""

from __future__ import annotations

from typing import Optional

from handoffcore.contracts.handoff.parser import CONTRACT_MARKER
from handoffcore.contracts.handoff.schema import Condition, Contract

_INDENT = "    "


def format_condition(condition: Condition) -> str:
    """Render one condition as a dict literal."""
    if not isinstance(condition.test, str):
        raise ValueError(
            f"Condition '{condition.display_name}' has a non-string test "
            f"and cannot be rendered"
        )

    fields = []
    if condition.name is not None:
        fields.append(f'"name": {condition.name!r}')
    fields.append(f'"test": {condition.test!r}')
    fields.append(f'"critical": {condition.critical!r}')
    if condition.error_message is not None:
        fields.append(f'"errorMessage": {condition.error_message!r}')
    return "{" + ", ".join(fields) + "}"


def _format_conditions(key: str, conditions: Optional[list[Condition]]) -> Optional[str]:
    if conditions is None:
        return None
    if not conditions:
        return f'{_INDENT}"{key}": [],'
    body = "\n".join(f"{_INDENT * 2}{format_condition(c)}," for c in conditions)
    return f'{_INDENT}"{key}": [\n{body}\n{_INDENT}],'


def format_contract(contract: Contract, marker: bool = True) -> str:
    """Render ``contract`` as text that ``parse_contract`` accepts.

    Args:
        contract: Contract with string-expression tests and no rollback.
        marker: Prefix the literal with ``TEST_CONTRACT: ``.

    Raises:
        ValueError: If a test or the rollback is a callable.
    """
    if contract.rollback is not None:
        raise ValueError("Contracts with a rollback callable cannot be rendered")

    lines = ["{"]
    for key, conditions in (
        ("preconditions", contract.preconditions),
        ("postconditions", contract.postconditions),
    ):
        rendered = _format_conditions(key, conditions)
        if rendered is not None:
            lines.append(rendered)
    lines.append("}")

    literal = "\n".join(lines)
    if marker:
        return f"{CONTRACT_MARKER} {literal}"
    return literal
