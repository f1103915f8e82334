"""
Capability-restricted evaluation of contract literals and condition
expressions.

Both the ``TEST_CONTRACT`` literal and string-form condition tests are
Python expressions.  They are compiled in ``eval`` mode against a fresh
globals mapping that holds only:

- a fixed allow-list of safe names (``datetime``, ``json``, ``print``
  and a curated set of builtins),
- ``require(name)``, a module loader restricted to an allow-list of
  module names plus ``.py`` files under one configured root,
- caller-supplied bindings such as ``data``, which shadow the defaults.

Before compiling, the AST is walked and dunder names or attributes are
rejected, which closes the usual ``().__class__.__bases__`` escape.

This is a capability-restricted evaluator, not a sandbox.  It relies on
scoping, not process isolation, and must only see trusted, internally
generated contract text.

Usage::

    evaluator = RestrictedEvaluator()
    evaluator.evaluate("len(data['files']) > 0", {"data": {"files": ["a.py"]}})
"""

from __future__ import annotations

import ast
import builtins
import importlib
import importlib.util
import json
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Mapping, Optional

from handoffcore.contracts.errors import ModuleNotAllowedError, UnsafeExpressionError
from handoffcore.contracts.timeouts import DEFAULT_ALLOWED_MODULES, DEFAULT_MODULE_ROOT

logger = logging.getLogger(__name__)

# Builtins with no filesystem, process or introspection reach
_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float",
    "frozenset", "int", "isinstance", "len", "list", "map", "max", "min",
    "range", "reversed", "round", "set", "sorted", "str", "sum", "tuple",
    "zip", "None", "True", "False",
    "Exception", "KeyError", "TypeError", "ValueError",
)

SAFE_BUILTINS: dict[str, Any] = {
    name: getattr(builtins, name)
    for name in _SAFE_BUILTIN_NAMES
    if hasattr(builtins, name)
}


def check_expression(source: str) -> ast.Expression:
    """Parse ``source`` in eval mode and reject dunder access.

    Returns:
        The parsed expression tree.

    Raises:
        SyntaxError: If ``source`` is not a valid Python expression.
        UnsafeExpressionError: If a dunder name or attribute is used.
    """
    tree = ast.parse(source.strip(), mode="eval")
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and node.attr.startswith("__"):
            raise UnsafeExpressionError(
                f"Attribute '{node.attr}' not allowed in contract expressions"
            )
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise UnsafeExpressionError(
                f"Name '{node.id}' not allowed in contract expressions"
            )
    return tree


class RestrictedEvaluator:
    """Evaluates trusted contract expressions against an explicit scope."""

    def __init__(
        self,
        allowed_modules: Optional[Iterable[str]] = None,
        module_root: str = DEFAULT_MODULE_ROOT,
    ) -> None:
        self._allowed_modules = frozenset(
            DEFAULT_ALLOWED_MODULES if allowed_modules is None else allowed_modules
        )
        self._module_root = Path(module_root).resolve()

    @property
    def allowed_modules(self) -> frozenset[str]:
        return self._allowed_modules

    @property
    def module_root(self) -> Path:
        return self._module_root

    def require(self, module: str) -> ModuleType:
        """Load an allow-listed module, or a ``.py`` file under the module root.

        Raises:
            ModuleNotAllowedError: For anything else.
        """
        if module in self._allowed_modules:
            return importlib.import_module(module)

        if module.startswith("/"):
            path = Path(module).resolve()
            if path.suffix == ".py" and path.is_relative_to(self._module_root):
                return self._load_path(path)

        logger.debug("Rejected require(%r)", module)
        raise ModuleNotAllowedError(module)

    def build_scope(self, extra_bindings: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Assemble the globals mapping an expression is evaluated against."""
        scope: dict[str, Any] = {
            "__builtins__": dict(SAFE_BUILTINS),
            # JSON literals
            "true": True,
            "false": False,
            "null": None,
            "datetime": datetime,
            "date": date,
            "timedelta": timedelta,
            "timezone": timezone,
            "json": json,
            "print": print,
            "require": self.require,
        }
        if extra_bindings:
            scope.update(extra_bindings)
        return scope

    def evaluate(
        self,
        source: str,
        extra_bindings: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Evaluate ``source`` as an expression and return its value.

        Lambdas created by the expression keep the restricted scope as their
        globals, so calling them later sees the same capabilities.

        Raises:
            SyntaxError: If ``source`` is not a valid expression.
            UnsafeExpressionError: If ``source`` uses dunder access.
            Exception: Whatever the expression itself raises.
        """
        tree = check_expression(source)
        code = compile(tree, "<contract>", "eval")
        return eval(code, self.build_scope(extra_bindings))  # noqa: S307 - AST-checked, trusted input

    # -- internal --------------------------------------------------------------

    def _load_path(self, path: Path) -> ModuleType:
        module_name = "handoffcore_contract_" + "_".join(
            path.relative_to(self._module_root).with_suffix("").parts
        )
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ModuleNotAllowedError(str(path))
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        logger.debug("Loaded contract module %s from %s", module_name, path)
        return module
