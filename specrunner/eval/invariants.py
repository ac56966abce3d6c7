"""
Invariant validation helpers for run results.

These functions check properties of a RunResult without raising exceptions,
returning a list of human-readable violation messages instead.
"""

from typing import Optional

from specrunner.models import FailureKind, Outcome, RunConfig, RunResult
from specrunner.spec import Spec


def check_result_invariants(
    result: RunResult,
    spec: Optional[Spec] = None,
    config: Optional[RunConfig] = None,
) -> list[str]:
    """
    Validate a RunResult against structural invariants.

    Args:
        result: The result to validate.
        spec: The spec that produced it (enables input-shape checks).
        config: The config it ran under (enables policy checks).

    Returns:
        List of violation messages. Empty list means all invariants passed.
    """
    violations = []

    # Invariant 1: first failure is the head of the failure list
    if result.failure is not None and (not result.failures or result.failures[0] != result.failure):
        violations.append("failure is not the first entry of failures")

    # Invariant 2: every failure happened within a counted iteration
    for idx, failure in enumerate(result.failures):
        if failure.iteration < 1:
            violations.append(f"Failures[{idx}]: iteration={failure.iteration} is not positive")
        if not (0 <= failure.worker < result.workers):
            violations.append(
                f"Failures[{idx}]: worker={failure.worker} outside pool of {result.workers}"
            )

    if result.failures and result.iterations < len(result.failures):
        violations.append(
            f"{len(result.failures)} failures recorded but only {result.iterations} iterations counted"
        )

    # Invariant 3: a faulted failure carries its exception type
    for idx, failure in enumerate(result.failures):
        if failure.kind == FailureKind.FAULT and not failure.fault_type:
            violations.append(f"Failures[{idx}]: faulted but fault_type is missing")
        if failure.kind == FailureKind.VALIDATION and failure.validator_index is None:
            violations.append(f"Failures[{idx}]: validation failure without validator_index")

    # Invariant 4: inputs match the declared parameters
    if spec is not None:
        if result.spec_name != spec.name:
            violations.append(f"spec_name '{result.spec_name}' does not match spec '{spec.name}'")
        for idx, failure in enumerate(result.failures):
            if len(failure.inputs) != len(spec.params):
                violations.append(
                    f"Failures[{idx}]: {len(failure.inputs)} inputs for {len(spec.params)} parameters"
                )
            if list(failure.arguments) != list(spec.param_names):
                violations.append(
                    f"Failures[{idx}]: argument names {list(failure.arguments)} "
                    f"differ from parameters {list(spec.param_names)}"
                )
            if failure.validator_index is not None and failure.validator_index >= len(spec.validators):
                violations.append(
                    f"Failures[{idx}]: validator_index={failure.validator_index} "
                    f"but spec has {len(spec.validators)} validators"
                )

    # Invariant 5: fail-fast keeps exactly one failure; collecting respects the cap
    if config is not None:
        if result.workers != config.workers:
            violations.append(f"workers={result.workers} but config asked for {config.workers}")
        if config.stop_on_first_failure and len(result.failures) > 1:
            violations.append(f"fail-fast run kept {len(result.failures)} failures")
        if len(result.failures) > config.max_failures:
            violations.append(
                f"{len(result.failures)} failures kept, cap is {config.max_failures}"
            )
        if config.seed is not None and result.seed != config.seed:
            violations.append(f"seed={result.seed} but config fixed seed {config.seed}")

    # Invariant 6: PASSED runs did some work
    if result.outcome == Outcome.PASSED and result.iterations == 0:
        violations.append("PASSED with zero iterations")

    return violations
