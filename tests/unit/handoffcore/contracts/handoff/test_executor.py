"""Tests for condition execution and the sequential runner."""

import asyncio

import pytest

from handoffcore.contracts.handoff.executor import (
    TIMED_OUT,
    ConditionExecutor,
    bind_positional,
)
from handoffcore.contracts.handoff.schema import (
    DEFAULT_CONDITION_NAME,
    DEFAULT_FAILURE_MESSAGE,
    Condition,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    return asyncio.run(coro)


def _raise(message):
    def _test(*args):
        raise RuntimeError(message)

    return _test


class _AmbiguousTruth:
    """Result object whose truth value cannot be decided (like an array)."""

    def __bool__(self):
        raise ValueError("truth value is ambiguous")


# ---------------------------------------------------------------------------
# bind_positional
# ---------------------------------------------------------------------------


class TestBindPositional:
    def test_trims_to_arity(self):
        assert bind_positional(lambda result: result, (1, 2)) == (1,)

    def test_keeps_all_for_varargs(self):
        assert bind_positional(lambda *args: args, (1, 2, 3)) == (1, 2, 3)

    def test_zero_arity(self):
        assert bind_positional(lambda: True, (1, 2)) == ()

    def test_uninspectable_callable_gets_everything(self):
        # Some builtins expose no signature
        assert bind_positional(max, (1, 2)) in ((1, 2), (1,))


# ---------------------------------------------------------------------------
# execute_condition
# ---------------------------------------------------------------------------


class TestExecuteCondition:
    def test_callable_truthy_passes(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="ok", test=lambda data: data["ready"]), {"ready": 1}
        ))

        assert result.passed is True
        assert result.name == "ok"
        assert result.error is None
        assert result.duration >= 0

    def test_callable_falsy_fails_with_configured_message(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="empty", test=lambda data: [], error_message="Nothing produced"),
            {},
        ))

        assert result.passed is False
        assert result.error_message == "Nothing produced"
        assert result.error is None

    def test_default_failure_message(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(Condition(test=lambda: False)))

        assert result.error_message == DEFAULT_FAILURE_MESSAGE
        assert result.name == DEFAULT_CONDITION_NAME

    def test_async_callable_is_awaited(self):
        async def check(data):
            await asyncio.sleep(0)
            return data == "ok"

        executor = ConditionExecutor()
        result = _run(executor.execute_condition(Condition(name="async", test=check), "ok"))

        assert result.passed is True

    def test_string_expression_binds_first_argument_as_data(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="expr", test="data['files'] and len(data['files']) == 2"),
            {"files": ["a.py", "b.py"]},
            {"ignored": True},
        ))

        assert result.passed is True

    def test_exception_is_captured(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="boom", test=_raise("Test failure"), critical=True), {}
        ))

        assert result.passed is False
        assert "Test failure" in result.error
        assert result.error_message == "Test failure"
        assert result.critical is True

    def test_exception_prefers_configured_message(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="boom", test=_raise("Test failure"), error_message="Expected failure"),
            {},
        ))

        assert result.error == "Test failure"
        assert result.error_message == "Expected failure"

    def test_undecidable_truth_value_is_captured(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(
            Condition(name="array", test=lambda data: _AmbiguousTruth(), critical=True), {}
        ))

        assert result.passed is False
        assert result.critical is True
        assert result.error == "truth value is ambiguous"

    def test_undecidable_truth_value_stops_runner(self):
        executor = ConditionExecutor()
        outcome = _run(executor.run_conditions(
            [
                Condition(name="array", test=lambda: _AmbiguousTruth(), critical=True),
                Condition(name="never", test=lambda: True),
            ],
            {},
        ))

        assert outcome.passed is False
        assert [r.name for r in outcome.results] == ["array"]

    def test_exception_uses_default_name(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(Condition(test=_raise("x")), {}))

        assert result.name == DEFAULT_CONDITION_NAME

    @pytest.mark.parametrize("test", [None, 42, ["data"]])
    def test_invalid_test_type_fails(self, test):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(Condition(name="bad", test=test), {}))

        assert result.passed is False
        assert result.error == "Invalid test function"

    def test_expression_error_is_captured(self):
        executor = ConditionExecutor()
        result = _run(executor.execute_condition(Condition(name="k", test="data['missing']"), {}))

        assert result.passed is False
        assert "missing" in result.error

    def test_timeout_fails_condition(self):
        async def hang(data):
            await asyncio.sleep(5)
            return True

        executor = ConditionExecutor(timeout_s=0.01)
        result = _run(executor.execute_condition(
            Condition(name="slow", test=hang, critical=True), {}
        ))

        assert result.passed is False
        assert result.error_message == TIMED_OUT
        assert result.error == TIMED_OUT
        assert result.critical is True


# ---------------------------------------------------------------------------
# run_conditions
# ---------------------------------------------------------------------------


class TestRunConditions:
    def test_no_conditions_trivially_pass(self):
        outcome = _run(ConditionExecutor().run_conditions([], {}))

        assert outcome.passed is True
        assert outcome.results == []

    def test_none_conditions_trivially_pass(self):
        outcome = _run(ConditionExecutor().run_conditions(None, {}))

        assert outcome.passed is True

    def test_critical_failure_stops_the_walk(self):
        calls = []
        conditions = [
            Condition(name="A", test=lambda d: calls.append("A") or False, critical=True),
            Condition(name="B", test=lambda d: calls.append("B") or True),
        ]
        outcome = _run(ConditionExecutor().run_conditions(conditions, {}))

        assert outcome.passed is False
        assert len(outcome.results) == 1
        assert calls == ["A"]

    def test_non_critical_failure_does_not_block(self):
        conditions = [
            Condition(name="A", test=lambda d: False, critical=False),
            Condition(name="B", test=lambda d: True, critical=True),
        ]
        outcome = _run(ConditionExecutor().run_conditions(conditions, {}))

        assert outcome.passed is True
        assert len(outcome.results) == 2
        assert outcome.results[0].passed is False

    def test_non_critical_exception_continues(self):
        conditions = [
            Condition(name="A", test=_raise("flaky")),
            Condition(name="B", test=lambda d: True),
        ]
        outcome = _run(ConditionExecutor().run_conditions(conditions, {}))

        assert outcome.passed is True
        assert [r.name for r in outcome.results] == ["A", "B"]
        assert outcome.results[0].error == "flaky"

    def test_critical_exception_stops(self):
        conditions = [
            Condition(name="A", test=_raise("fatal"), critical=True),
            Condition(name="B", test=lambda d: True),
        ]
        outcome = _run(ConditionExecutor().run_conditions(conditions, {}))

        assert outcome.passed is False
        assert len(outcome.results) == 1

    def test_runs_strictly_in_order(self):
        order = []

        async def step(name, delay):
            await asyncio.sleep(delay)
            order.append(name)
            return True

        conditions = [
            Condition(name="slow", test=lambda d: step("slow", 0.02)),
            Condition(name="fast", test=lambda d: step("fast", 0)),
        ]
        _run(ConditionExecutor().run_conditions(conditions, {}))

        assert order == ["slow", "fast"]

    def test_passes_all_arguments_to_two_arity_predicates(self):
        seen = []
        conditions = [
            Condition(name="both", test=lambda result, handoff: seen.append((result, handoff)) or True),
        ]
        _run(ConditionExecutor().run_conditions(conditions, "result", {"h": 1}))

        assert seen == [("result", {"h": 1})]
