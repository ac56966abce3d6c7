"""
Runner Module

Executes a Spec repeatedly across a fixed pool of worker threads until the
time budget elapses or a failure is found.

Per run:
1. A deadline timer and W workers are started.
2. Each worker loops draw -> invoke -> validate on its own random.Random
   until the shared stop event is set.
3. The stop event is set by the deadline timer, by the first recorded
   failure (fail-fast), or by a generator giving up.
4. Workers are joined; private iteration counters are summed afterwards.

Cancellation is cooperative: a worker always finishes its current iteration
before checking the stop event.
"""

import logging
import random
import threading
import time
import traceback
from copy import deepcopy
from enum import Enum
from typing import Callable, Iterable, Optional

from .config import resolve_run_config
from .errors import GeneratorExhausted
from .models import Failure, FailureKind, IterationRecord, Outcome, RunConfig, RunResult
from .reporter import Reporter
from .spec import Spec, SpecRegistry, default_registry
from .synth import describe_inputs, draw

logger = logging.getLogger(__name__)

IterationHook = Callable[[IterationRecord], None]


class RunState(str, Enum):
    """Lifecycle of a Runner."""
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


def _fault_description(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def check_case(
    spec: Spec,
    inputs: tuple,
    worker: int = 0,
    iteration: int = 0,
    on_iteration: Optional[IterationHook] = None,
) -> Optional[Failure]:
    """
    Run one iteration against a concrete input tuple.

    The function receives a deep copy of inputs, so the recorded inputs stay
    exactly as drawn even if the function mutates its arguments. Validators
    see the untouched inputs. Inputs that cannot be copied are a fault of
    the inputs, reported before the function is called.

    Returns:
        None if every validator held, otherwise the Failure for this case.
    """
    arguments = describe_inputs(spec, inputs)

    def failure(**fields) -> Failure:
        return Failure(inputs=inputs, arguments=arguments, iteration=iteration, worker=worker, **fields)

    def notify(result_text: str) -> None:
        if on_iteration is not None:
            on_iteration(IterationRecord(
                spec_name=spec.name,
                worker=worker,
                iteration=iteration,
                arguments=arguments,
                result=result_text,
            ))

    try:
        call_inputs = deepcopy(inputs)
    except Exception as exc:
        notify(f"inputs not copyable: {_fault_description(exc)}")
        return failure(
            kind=FailureKind.FAULT,
            message=f"inputs for {spec.name} could not be copied: {_fault_description(exc)}",
            fault_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

    try:
        result = spec.invoke(call_inputs)
    except Exception as exc:
        notify(f"raised {_fault_description(exc)}")
        return failure(
            kind=FailureKind.FAULT,
            message=f"{spec.name} raised {_fault_description(exc)}",
            fault_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

    result_repr = repr(result)
    notify(result_repr)

    for index, validator in enumerate(spec.validators):
        try:
            held = validator.check(result, inputs)
        except AssertionError as exc:
            return failure(
                kind=FailureKind.VALIDATION,
                validator_index=index,
                validator_name=validator.name,
                message=str(exc) or f"{validator.name} assertion failed",
                result=result_repr,
            )
        except Exception as exc:
            return failure(
                kind=FailureKind.FAULT,
                validator_index=index,
                validator_name=validator.name,
                message=f"validator {validator.name} raised {_fault_description(exc)}",
                fault_type=type(exc).__name__,
                traceback=traceback.format_exc(),
                result=result_repr,
            )
        if not held:
            return failure(
                kind=FailureKind.VALIDATION,
                validator_index=index,
                validator_name=validator.name,
                message=f"{validator.name} returned false",
                result=result_repr,
            )

    return None


def replay(spec: Spec, failure: Failure) -> Optional[Failure]:
    """Re-run the recorded inputs of a failure; returns the new outcome (None if it now passes)."""
    return check_case(spec, failure.inputs, worker=failure.worker, iteration=failure.iteration)


class Runner:
    """
    Single-use scheduler for one run of one spec.

    The stop event and the failure slot are the only state shared between
    workers; the failure slot is guarded by a lock so only the first
    writer is kept under fail-fast.
    """

    def __init__(
        self,
        spec: Spec,
        config: Optional[RunConfig] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.spec = spec
        self.config = resolve_run_config(config)
        self.reporter = reporter or Reporter()
        self.state = RunState.IDLE

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._failures: list[Failure] = []
        self._error: Optional[str] = None
        self._counts = [0] * self.config.workers
        self._crashes: list[BaseException] = []

    def run(self) -> RunResult:
        """
        Execute the run and block until every worker has stopped.

        Raises:
            RuntimeError: if this Runner has already been started.
        """
        if self.state != RunState.IDLE:
            raise RuntimeError(f"runner for '{self.spec.name}' has already been started")
        self.state = RunState.RUNNING

        config = self.config
        base_seed = config.seed if config.seed is not None else random.randrange(2 ** 32)
        hook = self.reporter.on_iteration if config.verbose else None

        logger.info(
            "running %s: workers=%d msec=%d seed=%d",
            self.spec.name,
            config.workers,
            config.msec,
            base_seed,
        )

        workers = [
            threading.Thread(
                target=self._work,
                args=(index, random.Random(base_seed + index), hook),
                name=f"specrunner-{self.spec.name}-{index}",
                daemon=True,
            )
            for index in range(config.workers)
        ]
        deadline = threading.Timer(config.msec / 1000.0, self._stop.set)
        deadline.daemon = True

        started = time.monotonic()
        deadline.start()
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        deadline.cancel()
        elapsed_ms = int((time.monotonic() - started) * 1000)

        self.state = RunState.COMPLETED

        if self._crashes:
            raise self._crashes[0]

        if self._failures:
            outcome = Outcome.FAILED
        elif self._error is not None:
            outcome = Outcome.ERRORED
        else:
            outcome = Outcome.PASSED

        result = RunResult(
            spec_name=self.spec.name,
            outcome=outcome,
            iterations=sum(self._counts),
            elapsed_ms=elapsed_ms,
            workers=config.workers,
            seed=base_seed,
            failure=self._failures[0] if self._failures else None,
            failures=list(self._failures),
            error=self._error,
        )
        logger.info(
            "finished %s: outcome=%s iterations=%d elapsed_ms=%d",
            result.spec_name,
            result.outcome.value,
            result.iterations,
            result.elapsed_ms,
        )
        return result

    def _work(self, index: int, rng: random.Random, hook: Optional[IterationHook]) -> None:
        count = 0
        try:
            while not self._stop.is_set():
                try:
                    inputs = draw(self.spec, rng)
                except GeneratorExhausted as exc:
                    self._record_error(index, exc)
                    break
                count += 1
                failure = check_case(self.spec, inputs, worker=index, iteration=count, on_iteration=hook)
                if failure is not None:
                    self._record_failure(failure)
        except BaseException as exc:
            logger.exception("worker %d of %s crashed", index, self.spec.name)
            self._crashes.append(exc)
            self._stop.set()
        finally:
            self._counts[index] = count

    def _record_failure(self, failure: Failure) -> None:
        with self._lock:
            if self.config.stop_on_first_failure:
                if self._failures or self._error is not None:
                    return
                self._failures.append(failure)
                self._stop.set()
            elif len(self._failures) < self.config.max_failures:
                self._failures.append(failure)
            else:
                return
        logger.info(
            "%s failed on worker %d iteration %d: %s",
            self.spec.name,
            failure.worker,
            failure.iteration,
            failure.message,
        )

    def _record_error(self, index: int, exc: GeneratorExhausted) -> None:
        with self._lock:
            if self._error is not None:
                return
            if self._failures and self.config.stop_on_first_failure:
                return
            self._error = str(exc)
            self._stop.set()
        logger.warning("%s errored on worker %d: %s", self.spec.name, index, exc)


def run_spec(
    spec: Spec,
    config: Optional[RunConfig] = None,
    reporter: Optional[Reporter] = None,
) -> RunResult:
    """Run a single spec with the given (or default) config."""
    return Runner(spec, config=config, reporter=reporter).run()


def run_specs(
    names: Iterable[str],
    config: Optional[RunConfig] = None,
    registry: Optional[SpecRegistry] = None,
    reporter: Optional[Reporter] = None,
) -> list[RunResult]:
    """
    Run registered specs one after another.

    The config and every spec name are resolved before the first run starts.

    Returns:
        One RunResult per name, in invocation order.

    Raises:
        ConfigurationError: if a name is unknown or the config is invalid.
    """
    config = resolve_run_config(config)
    specs = (registry if registry is not None else default_registry).resolve(names)
    return [run_spec(spec, config=config, reporter=reporter) for spec in specs]
