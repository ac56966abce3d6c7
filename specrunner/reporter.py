"""
Reporter Module

Formats run outcomes for people and for machines.

- format_result(result) -> str: pure text rendering of one RunResult
- format_results(results) -> str: several reports plus a summary line
- result_to_dict(result) -> dict: JSON-ready rendering
- Reporter: per-iteration hook for verbose runs

A failure report always includes the exact inputs, rendered as a call
expression, so the case can be replayed by calling the function directly.
"""

import logging
import threading
from typing import Any, Iterable, Optional

from .models import Failure, IterationRecord, Outcome, RunResult

logger = logging.getLogger(__name__)


def format_call(spec_name: str, arguments: dict[str, str]) -> str:
    """Render inputs as a call expression, e.g. "adds(a=-7, b=-5)"."""
    rendered = ", ".join(f"{name}={value}" for name, value in arguments.items())
    return f"{spec_name}({rendered})"


def _format_failure(spec_name: str, failure: Failure) -> list[str]:
    lines = [f"  inputs: {format_call(spec_name, failure.arguments)}"]
    if failure.faulted:
        lines.append(f"  raised: {failure.fault_type}: {failure.message}")
    else:
        lines.append(f"  violated: {failure.validator_name} (validator #{failure.validator_index})")
        lines.append(f"  message: {failure.message}")
    if failure.result is not None:
        lines.append(f"  result: {failure.result}")
    lines.append(f"  found by worker {failure.worker} at iteration {failure.iteration}")
    return lines


def format_result(result: RunResult) -> str:
    """
    Render a single RunResult as text.

    Pure function: no I/O, no logging.
    """
    header = (
        f"{result.spec_name}: {result.outcome.value} "
        f"({result.iterations} iterations in {result.elapsed_ms} ms, "
        f"{result.workers} workers, seed {result.seed})"
    )
    lines = [header]

    if result.outcome == Outcome.FAILED and result.failure is not None:
        lines.extend(_format_failure(result.spec_name, result.failure))
        extra = len(result.failures) - 1
        if extra > 0:
            lines.append(f"  ...and {extra} more failure(s)")
            for failure in result.failures[1:]:
                lines.append(f"  - {format_call(result.spec_name, failure.arguments)}: {failure.message}")

    if result.error:
        lines.append(f"  error: {result.error}")

    return "\n".join(lines)


def format_results(results: Iterable[RunResult]) -> str:
    """Render several results followed by a pass/fail summary."""
    results = list(results)
    blocks = [format_result(r) for r in results]
    passed = sum(1 for r in results if r.outcome == Outcome.PASSED)
    blocks.append(f"{passed}/{len(results)} passed")
    return "\n\n".join(blocks)


def result_to_dict(result: RunResult) -> dict[str, Any]:
    """JSON-ready dict of a RunResult; inputs appear as reprs under `arguments`."""
    data = result.model_dump(mode="json")
    data["passed"] = result.passed
    return data


class Reporter:
    """
    Sink for run output.

    on_iteration is called from worker threads in verbose mode, before the
    pass/fail decision for that iteration. Iterations are logged and, when
    keep_iterations is set, kept in memory for inspection.
    """

    def __init__(self, keep_iterations: bool = False, level: int = logging.INFO):
        self.keep_iterations = keep_iterations
        self.level = level
        self.iterations: list[IterationRecord] = []
        self._lock = threading.Lock()

    def on_iteration(self, record: IterationRecord) -> None:
        logger.log(
            self.level,
            "[%s] worker=%d iteration=%d %s -> %s",
            record.spec_name,
            record.worker,
            record.iteration,
            format_call(record.spec_name, record.arguments),
            record.result,
        )
        if self.keep_iterations:
            with self._lock:
                self.iterations.append(record)

    def report(self, result: RunResult) -> str:
        """Format a result and log it."""
        text = format_result(result)
        logger.info("%s", text)
        return text

    def report_all(self, results: Iterable[RunResult], title: Optional[str] = None) -> str:
        text = format_results(results)
        if title:
            text = f"=== {title} ===\n\n{text}"
        logger.info("%s", text)
        return text
