"""
Error taxonomy for the spec runner.

- ConfigurationError: a spec or run config is unusable. Raised synchronously
  at registration or run start, before any worker exists.
- GeneratorExhausted: a rejection loop gave up. Inside a run this becomes
  an ERRORED outcome instead of propagating.

Validation failures and faulted invocations are never raised to callers;
the runner records them as Failure objects (see models.FailureKind).
"""


class SpecRunnerError(Exception):
    """Base class for all spec runner errors."""


class ConfigurationError(SpecRunnerError):
    """A spec, generator or run config is invalid."""


class GeneratorExhausted(SpecRunnerError):
    """A generator could not produce an accepted value within its retry budget."""

    def __init__(self, message: str, attempts: int | None = None, param: str | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.param = param

    def with_param(self, param: str) -> "GeneratorExhausted":
        """Return a copy of this error annotated with the parameter being drawn."""
        return GeneratorExhausted(
            f"parameter '{param}': {self}",
            attempts=self.attempts,
            param=param,
        )
