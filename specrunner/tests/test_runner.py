"""
Tests for the runner.

Tests verify:
- check_case distinguishes passing cases, predicate violations and faults
- Recorded inputs are exact and replayable
- Always-true specs run until the deadline and pass with iterations > 0
- Falsifiable specs stop early with the first failure (fail-fast)
- The collect-all policy keeps sampling until the deadline
- Generator exhaustion ends the run as ERRORED
- Configuration errors surface before any worker starts
- Runners are single-use and core defects are re-raised
"""

import threading

import pytest
from pydantic import ValidationError

from specrunner import config as config_module
from specrunner import runner as runner_module
from specrunner.errors import ConfigurationError
from specrunner.eval.invariants import check_result_invariants
from specrunner.generators import derived, one_of, such_that, uniform, vector_of
from specrunner.models import FailureKind, Outcome, RunConfig
from specrunner.reporter import Reporter
from specrunner.runner import RunState, Runner, check_case, replay, run_spec, run_specs
from specrunner.spec import SpecRegistry, make_spec


def add(a, b):
    return a + b


def non_negative(result, a, b):
    return result >= 0


@pytest.fixture
def addition_spec():
    """(a, b) -> a + b over [-10, 10) with result >= 0; falsifiable."""
    return make_spec(
        "integer-addition-is-always-positive",
        add,
        [("a", uniform(-10, 10)), ("b", uniform(-10, 10))],
        [non_negative],
    )


@pytest.fixture
def always_true_spec():
    return make_spec(
        "addition-is-commutative",
        add,
        [("a", uniform(-100, 100)), ("b", uniform(-100, 100))],
        [lambda result, a, b: result == b + a],
    )


class TestCheckCase:
    """Test a single iteration against concrete inputs."""

    def test_passing_case_returns_none(self, addition_spec):
        """Verify a case satisfying every validator is not a failure."""
        assert check_case(addition_spec, (3, 4)) is None

    def test_false_predicate_is_validation_failure(self, addition_spec):
        """Verify a false validator is recorded as a validation failure."""
        failure = check_case(addition_spec, (-7, -5), worker=2, iteration=9)
        assert failure is not None
        assert failure.kind == FailureKind.VALIDATION
        assert not failure.faulted
        assert failure.inputs == (-7, -5)
        assert failure.arguments == {"a": "-7", "b": "-5"}
        assert failure.validator_index == 0
        assert failure.validator_name == "non_negative"
        assert failure.result == "-12"
        assert failure.worker == 2
        assert failure.iteration == 9

    def test_assertion_error_is_validation_failure(self):
        """Verify a validator that asserts is treated as a violated predicate."""
        def must_be_even(result, n):
            assert result % 2 == 0, f"{result} is odd"
            return True

        spec = make_spec("doubles", lambda n: n + 1, [("n", uniform(0, 10))], [must_be_even])
        failure = check_case(spec, (2,))
        assert failure.kind == FailureKind.VALIDATION
        assert failure.message == "3 is odd"

    def test_function_exception_is_fault(self):
        """Verify an exception from the function under test is a faulted failure."""
        spec = make_spec("divides", lambda a, b: a // b, [("a", uniform(0, 5)), ("b", uniform(0, 5))])
        failure = check_case(spec, (4, 0))
        assert failure.kind == FailureKind.FAULT
        assert failure.faulted
        assert failure.fault_type == "ZeroDivisionError"
        assert failure.validator_index is None
        assert "ZeroDivisionError" in failure.traceback

    def test_validator_exception_is_fault(self):
        """Verify a validator raising something other than AssertionError is a fault."""
        spec = make_spec(
            "lookup",
            lambda n: {},
            [("n", uniform(0, 5))],
            [lambda result, n: result["missing"] == n],
        )
        failure = check_case(spec, (1,))
        assert failure.kind == FailureKind.FAULT
        assert failure.fault_type == "KeyError"
        assert failure.validator_index == 0

    def test_validators_checked_in_order(self):
        """Verify the first violated validator is the one reported."""
        spec = make_spec(
            "ordered",
            lambda n: n,
            [("n", uniform(0, 5))],
            [lambda r, n: True, lambda r, n: False, lambda r, n: False],
        )
        assert check_case(spec, (1,)).validator_index == 1

    def test_mutating_function_does_not_alter_recorded_inputs(self):
        """Verify inputs are recorded as drawn even if the function mutates them."""
        def sort_in_place(xs):
            xs.sort()
            return None

        spec = make_spec("mutates", sort_in_place, [("xs", vector_of(uniform(0, 9), 3))], [lambda r, xs: False])
        failure = check_case(spec, ([3, 1, 2],))
        assert failure.inputs == ([3, 1, 2],)
        assert failure.arguments == {"xs": "[3, 1, 2]"}

    def test_uncopyable_inputs_do_not_blame_the_function(self):
        """Verify inputs that cannot be copied are reported without invoking the function."""
        calls = []
        spec = make_spec(
            "holds-lock",
            lambda lock: calls.append(lock),
            [("lock", derived(lambda rng: threading.Lock()))],
        )
        records = []
        failure = check_case(spec, (threading.Lock(),), on_iteration=records.append)

        assert calls == []
        assert failure.kind == FailureKind.FAULT
        assert failure.fault_type == "TypeError"
        assert failure.message.startswith("inputs for holds-lock could not be copied")
        assert "holds-lock raised" not in failure.message
        assert records[0].result.startswith("inputs not copyable")

    def test_zero_validators_only_check_for_exceptions(self):
        """Verify a spec without validators passes unless the function raises."""
        spec = make_spec("identity", lambda n: n, [("n", uniform(0, 5))])
        assert check_case(spec, (3,)) is None

    def test_iteration_hook_sees_inputs_and_result(self, addition_spec):
        """Verify the verbose hook is given each iteration before the verdict."""
        records = []
        check_case(addition_spec, (-1, -1), iteration=4, on_iteration=records.append)
        assert len(records) == 1
        assert records[0].arguments == {"a": "-1", "b": "-1"}
        assert records[0].result == "-2"
        assert records[0].iteration == 4


class TestRunPasses:
    """Test runs that should pass."""

    def test_always_true_spec_passes_within_budget(self, always_true_spec):
        """Verify an always-true spec passes after roughly its time budget."""
        cfg = RunConfig(workers=2, msec=200, seed=3)
        result = run_spec(always_true_spec, cfg)

        assert result.outcome == Outcome.PASSED
        assert result.passed
        assert result.iterations > 0
        assert result.failure is None
        assert result.failures == []
        assert 200 <= result.elapsed_ms < 200 + 2000
        assert check_result_invariants(result, always_true_spec, cfg) == []

    def test_zero_validator_spec_passes(self):
        """Verify a spec without validators passes when nothing raises."""
        spec = make_spec("no-validators", lambda xs: sorted(xs), [("xs", vector_of(uniform(0, 50), 10))])
        result = run_spec(spec, RunConfig(workers=1, msec=100))
        assert result.outcome == Outcome.PASSED

    def test_seed_is_reported(self, always_true_spec):
        """Verify a fixed seed is carried into the result."""
        result = run_spec(always_true_spec, RunConfig(workers=1, msec=50, seed=99))
        assert result.seed == 99

    def test_random_seed_is_reported_when_unset(self, always_true_spec):
        """Verify a base seed is chosen and reported when none is configured."""
        result = run_spec(always_true_spec, RunConfig(workers=1, msec=50))
        assert isinstance(result.seed, int)


class TestRunFails:
    """Test runs that find a counterexample."""

    def test_addition_counterexample_found(self, addition_spec):
        """Verify a + b >= 0 is falsified with a pair summing below zero."""
        cfg = RunConfig(workers=4, msec=5000, seed=11)
        result = run_spec(addition_spec, cfg)

        assert result.outcome == Outcome.FAILED
        a, b = result.failure.inputs
        assert a + b < 0
        assert result.failure.kind == FailureKind.VALIDATION
        assert result.elapsed_ms < 5000
        assert check_result_invariants(result, addition_spec, cfg) == []

    def test_fail_fast_keeps_only_first_failure(self):
        """Verify only one failure is kept even when every worker fails."""
        spec = make_spec("always-false", lambda n: n, [("n", uniform(0, 100))], [lambda r, n: False])
        cfg = RunConfig(workers=8, msec=5000)
        result = run_spec(spec, cfg)

        assert result.outcome == Outcome.FAILED
        assert len(result.failures) == 1
        assert result.failures[0] == result.failure
        assert result.iterations >= 1

    def test_recorded_inputs_replay_the_failure(self, addition_spec):
        """Verify re-invoking with the recorded inputs reproduces the violation."""
        result = run_spec(addition_spec, RunConfig(workers=2, msec=5000))
        failure = result.failure

        assert add(*failure.inputs) < 0
        replayed = replay(addition_spec, failure)
        assert replayed is not None
        assert replayed.kind == failure.kind
        assert replayed.validator_index == failure.validator_index
        assert replayed.inputs == failure.inputs

    def test_fault_ends_run_as_failed(self):
        """Verify an exception from the function under test fails the run."""
        spec = make_spec("raises", lambda n: 1 // (n - 3), [("n", uniform(0, 6))])
        result = run_spec(spec, RunConfig(workers=2, msec=5000))

        assert result.outcome == Outcome.FAILED
        assert result.failure.faulted
        assert result.failure.inputs == (3,)

    def test_collect_all_runs_until_deadline(self, addition_spec):
        """Verify stop_on_first_failure=False keeps sampling and caps kept failures."""
        cfg = RunConfig(workers=2, msec=200, stop_on_first_failure=False, max_failures=5)
        result = run_spec(addition_spec, cfg)

        assert result.outcome == Outcome.FAILED
        assert len(result.failures) == 5
        assert result.failure == result.failures[0]
        assert result.elapsed_ms >= 200
        assert all(add(*f.inputs) < 0 for f in result.failures)
        assert check_result_invariants(result, addition_spec, cfg) == []


class TestRunErrors:
    """Test runs whose input generation fails."""

    def test_generator_exhaustion_is_errored(self):
        """Verify an exhausted generator ends the run as ERRORED."""
        spec = make_spec(
            "impossible",
            lambda n: n,
            [("n", such_that(one_of(1), lambda v: v == 2, max_tries=5))],
        )
        result = run_spec(spec, RunConfig(workers=3, msec=5000))

        assert result.outcome == Outcome.ERRORED
        assert "parameter 'n'" in result.error
        assert result.failure is None
        assert result.iterations == 0
        assert result.elapsed_ms < 5000

    def test_invalid_config_rejected(self):
        """Verify non-positive workers or budgets are configuration errors."""
        with pytest.raises(ConfigurationError):
            RunConfig(workers=0)
        with pytest.raises(ConfigurationError):
            RunConfig(msec=0)
        with pytest.raises(ConfigurationError):
            RunConfig(max_failures=0)

    def test_config_cannot_be_changed_after_validation(self):
        """Verify a validated config cannot be edited into an invalid one before a run."""
        cfg = RunConfig(workers=2, msec=100)
        with pytest.raises(ValidationError):
            cfg.workers = 0
        assert cfg.workers == 2

        spec = make_spec("never", lambda n: n, [("n", uniform(0, 5))], [lambda r, n: False])
        result = run_spec(spec, cfg)
        assert result.outcome == Outcome.FAILED
        assert result.workers == 2


class TestVerbose:
    """Test verbose iteration reporting."""

    def test_every_iteration_reaches_reporter(self, always_true_spec):
        """Verify the reporter sees exactly as many iterations as were counted."""
        reporter = Reporter(keep_iterations=True)
        result = run_spec(always_true_spec, RunConfig(workers=2, msec=100, verbose=True), reporter=reporter)

        assert result.iterations > 0
        assert len(reporter.iterations) == result.iterations
        assert {r.worker for r in reporter.iterations} <= {0, 1}

    def test_quiet_run_skips_reporter(self, always_true_spec):
        """Verify iterations are not reported when verbose is off."""
        reporter = Reporter(keep_iterations=True)
        run_spec(always_true_spec, RunConfig(workers=1, msec=50), reporter=reporter)
        assert reporter.iterations == []


class TestRunnerLifecycle:
    """Test runner state and error propagation."""

    def test_runner_is_single_use(self, always_true_spec):
        """Verify a completed runner cannot be run again."""
        runner = Runner(always_true_spec, RunConfig(workers=1, msec=20))
        assert runner.state == RunState.IDLE
        runner.run()
        assert runner.state == RunState.COMPLETED
        with pytest.raises(RuntimeError):
            runner.run()

    def test_core_defect_is_reraised(self, always_true_spec):
        """Verify an exception escaping a worker surfaces on the caller."""
        class BrokenReporter(Reporter):
            def on_iteration(self, record):
                raise RuntimeError("reporter exploded")

        with pytest.raises(RuntimeError, match="reporter exploded"):
            run_spec(always_true_spec, RunConfig(workers=2, msec=1000, verbose=True), reporter=BrokenReporter())

    def test_no_worker_threads_left_behind(self, always_true_spec):
        """Verify all workers are joined when run() returns."""
        run_spec(always_true_spec, RunConfig(workers=3, msec=50))
        leftover = [t for t in threading.enumerate() if t.name.startswith("specrunner-addition-is-commutative")]
        assert leftover == []

    def test_default_config_used_without_override(self, always_true_spec, monkeypatch):
        """Verify the process-wide default applies when no config is passed."""
        monkeypatch.setattr(config_module, "_default", RunConfig(workers=1, msec=30, seed=5))
        result = run_spec(always_true_spec)
        assert result.workers == 1
        assert result.seed == 5


class TestRunSpecs:
    """Test running several registered specs."""

    def test_results_in_invocation_order(self, addition_spec, always_true_spec):
        """Verify one result per name, in the order requested."""
        registry = SpecRegistry()
        registry.add(addition_spec)
        registry.add(always_true_spec)

        results = run_specs(
            [always_true_spec.name, addition_spec.name],
            config=RunConfig(workers=2, msec=100),
            registry=registry,
        )
        assert [r.spec_name for r in results] == [always_true_spec.name, addition_spec.name]
        assert results[0].outcome == Outcome.PASSED
        assert results[1].outcome == Outcome.FAILED

    def test_unknown_name_rejected_before_running(self, always_true_spec, monkeypatch):
        """Verify an unknown name aborts before any spec runs."""
        registry = SpecRegistry()
        registry.add(always_true_spec)
        calls = []
        monkeypatch.setattr(runner_module, "run_spec", lambda *args, **kwargs: calls.append(args))

        with pytest.raises(ConfigurationError):
            run_specs([always_true_spec.name, "missing"], config=RunConfig(workers=1, msec=10), registry=registry)
        assert calls == []

    def test_empty_registry_is_not_replaced_by_default(self):
        """Verify an explicitly passed empty registry is used as is."""
        with pytest.raises(ConfigurationError):
            run_specs(["anything"], config=RunConfig(workers=1, msec=10), registry=SpecRegistry())
