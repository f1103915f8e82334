"""
Locate and decode the ``TEST_CONTRACT:`` block embedded in agent output.

The literal is delimited by brace balance rather than a grammar, so
condition bodies that contain braces of their own (dict literals, set
comprehensions) do not end the block early.

A missing contract is a normal outcome and yields ``None``; so does any
parse failure, which is additionally logged.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from handoffcore.contracts.errors import ContractParseError
from handoffcore.contracts.handoff.evaluator import RestrictedEvaluator
from handoffcore.contracts.handoff.schema import Contract, is_valid_contract

logger = logging.getLogger(__name__)

CONTRACT_MARKER = "TEST_CONTRACT:"


def find_contract_literal(text: str, marker: str = CONTRACT_MARKER) -> Optional[str]:
    """Return the brace-delimited literal following ``marker``.

    Returns:
        The literal including its outer braces, or ``None`` when the marker
        or the opening brace after it is absent.

    Raises:
        ContractParseError: If the braces never balance before end of input.
    """
    start = text.find(marker)
    if start == -1:
        return None

    open_index = text.find("{", start)
    if open_index == -1:
        return None

    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if depth == 0:
            return text[open_index : index + 1]

    raise ContractParseError(f"No matching closing brace found for {marker}")


class ContractParser:
    """Turns agent output text into a ``Contract`` (or ``None``)."""

    def __init__(
        self,
        evaluator: Optional[RestrictedEvaluator] = None,
        log: Optional[logging.Logger] = None,
        marker: str = CONTRACT_MARKER,
    ) -> None:
        self._evaluator = evaluator or RestrictedEvaluator()
        self._log = log or logger
        self._marker = marker

    def parse(self, text: str) -> Optional[Contract]:
        """Parse the first embedded contract in ``text``. Never raises."""
        try:
            literal = find_contract_literal(text, self._marker)
            if literal is None:
                return None

            raw = self._evaluator.evaluate(literal)
            if not is_valid_contract(raw):
                raise ContractParseError("Invalid contract structure")

            return Contract.coerce(raw)
        except ValidationError as exc:
            self._log.warning(
                "Contract parsing failed: %d schema error(s): %s",
                exc.error_count(),
                exc.errors(include_url=False)[0]["msg"],
            )
            return None
        except Exception as exc:
            self._log.warning("Contract parsing failed: %s", exc)
            return None


def parse_contract(text: str) -> Optional[Contract]:
    """Parse with a default evaluator (module-level convenience)."""
    return ContractParser().parse(text)
