"""
Core data models for the spec runner.

These models define the values that flow out of a run:
- RunConfig: per-run scheduling settings (workers, time budget, verbosity)
- IterationRecord: one draw/invoke/validate cycle, surfaced in verbose mode
- Failure: the recorded counterexample for a run
- RunResult: the terminal outcome of one spec run
"""

import os
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from .errors import ConfigurationError

DEFAULT_MSEC = 10_000
DEFAULT_MAX_FAILURES = 100


def default_worker_count() -> int:
    """Number of available processing units (at least 1)."""
    return os.cpu_count() or 1


class Outcome(str, Enum):
    """Terminal outcome of a run."""
    PASSED = "PASSED"    # Deadline elapsed with no failure
    FAILED = "FAILED"    # A validator was violated or the function raised
    ERRORED = "ERRORED"  # Input generation itself failed


class FailureKind(str, Enum):
    """How an iteration failed."""
    VALIDATION = "validation"  # Predicate returned false (or asserted)
    FAULT = "fault"            # Function under test or validator raised


class RunConfig(BaseModel):
    """
    Scheduling settings for a single run.

    - workers: size of the worker pool
    - msec: wall-clock budget in milliseconds
    - verbose: surface every iteration to the reporter
    - stop_on_first_failure: fail-fast (True) or collect failures until the deadline
    - seed: base seed; worker i draws from random.Random(seed + i)
    - max_failures: cap on failures kept when collecting
    """

    workers: int = Field(default_factory=default_worker_count, description="Number of concurrent workers")
    msec: int = Field(default=DEFAULT_MSEC, description="Time budget in milliseconds")
    verbose: bool = Field(default=False, description="Report every iteration")
    stop_on_first_failure: bool = Field(default=True, description="Stop the run at the first failure")
    seed: Optional[int] = Field(default=None, description="Base seed for reproducible draws")
    max_failures: int = Field(default=DEFAULT_MAX_FAILURES, description="Failures kept when collecting")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_limits(self):
        """Reject non-positive worker counts and budgets."""
        if self.workers < 1:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")
        if self.msec < 1:
            raise ConfigurationError(f"msec must be positive, got {self.msec}")
        if self.max_failures < 1:
            raise ConfigurationError(f"max_failures must be positive, got {self.max_failures}")
        return self


class IterationRecord(BaseModel):
    """A single iteration as seen by the verbose reporter."""
    spec_name: str
    worker: int = Field(..., description="Index of the worker that ran the iteration")
    iteration: int = Field(..., description="1-based iteration count within the worker")
    arguments: dict[str, str] = Field(..., description="Parameter name -> repr of drawn value")
    result: str = Field(..., description="repr of the return value, or the raised exception")


class Failure(BaseModel):
    """
    The counterexample recorded for a run.

    `inputs` holds the exact drawn values (replayable). It is excluded from
    serialization because arbitrary values may not be JSON-encodable;
    `arguments` carries their reprs instead.
    """

    kind: FailureKind = Field(..., description="validation or fault")
    inputs: tuple[Any, ...] = Field(..., exclude=True, description="Exact input tuple")
    arguments: dict[str, str] = Field(..., description="Parameter name -> repr of input")
    validator_index: Optional[int] = Field(default=None, description="Index of the violated validator")
    validator_name: Optional[str] = Field(default=None, description="Name of the violated validator")
    message: str = Field(default="", description="Human-readable failure description")
    fault_type: Optional[str] = Field(default=None, description="Exception class name when faulted")
    traceback: Optional[str] = Field(default=None, description="Formatted traceback when faulted")
    result: Optional[str] = Field(default=None, description="repr of the function's return value")
    iteration: int = Field(..., description="Worker iteration count at the time of failure")
    worker: int = Field(..., description="Index of the worker that found it")

    model_config = {"frozen": True}

    @property
    def faulted(self) -> bool:
        return self.kind == FailureKind.FAULT


class RunResult(BaseModel):
    """Outcome of running one spec."""

    spec_name: str = Field(..., description="Name of the spec that was run")
    outcome: Outcome = Field(..., description="PASSED, FAILED or ERRORED")
    iterations: int = Field(..., description="Total iterations completed across workers")
    elapsed_ms: int = Field(..., description="Wall-clock duration of the run")
    workers: int = Field(..., description="Worker pool size")
    seed: int = Field(..., description="Base seed; worker i drew from random.Random(seed + i)")
    failure: Optional[Failure] = Field(default=None, description="First recorded failure")
    failures: list[Failure] = Field(default_factory=list, description="All recorded failures")
    error: Optional[str] = Field(default=None, description="Generator error for ERRORED runs")

    @model_validator(mode="after")
    def validate_outcome(self):
        """Keep outcome and payload consistent."""
        if self.iterations < 0:
            raise ValueError("iterations must be non-negative")
        if self.outcome == Outcome.FAILED and self.failure is None:
            raise ValueError("FAILED result requires a failure")
        if self.outcome == Outcome.ERRORED and not self.error:
            raise ValueError("ERRORED result requires an error message")
        if self.outcome == Outcome.PASSED and (self.failure is not None or self.error):
            raise ValueError("PASSED result must not carry a failure or error")
        return self

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED
