"""
Spec registration and binding.

A Spec binds a function under test to an ordered list of named parameter
generators and zero or more validator predicates. Specs are immutable and
live in a SpecRegistry, keyed by name.

Validators are called as predicate(result, *inputs) so they can relate the
output to the input. A validator is violated when it returns a falsy value
or raises AssertionError; any other exception is a fault.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from .errors import ConfigurationError
from .generators import Generator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Param:
    """A named parameter and the generator that feeds it."""
    name: str
    generator: Generator


@dataclass(frozen=True)
class Validator:
    """A named predicate over (result, *inputs)."""
    name: str
    predicate: Callable[..., Any]

    def check(self, result: Any, inputs: tuple) -> bool:
        return bool(self.predicate(result, *inputs))


@dataclass(frozen=True)
class Spec:
    """Immutable descriptor of one property to run."""
    name: str
    fn: Callable[..., Any]
    params: tuple[Param, ...]
    validators: tuple[Validator, ...] = ()

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.params)

    def invoke(self, inputs: tuple) -> Any:
        """Apply the function under test positionally to an input tuple."""
        return self.fn(*inputs)


ParamLike = Union[Param, tuple[str, Generator]]
ValidatorLike = Union[Validator, Callable[..., Any]]


def _coerce_param(item: ParamLike) -> Param:
    if isinstance(item, Param):
        param = item
    else:
        try:
            name, generator = item
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"parameter must be a Param or a (name, generator) pair, got {item!r}"
            ) from None
        param = Param(name=name, generator=generator)

    if not isinstance(param.name, str) or not param.name:
        raise ConfigurationError(f"parameter name must be a non-empty string, got {param.name!r}")
    if not isinstance(param.generator, Generator):
        raise ConfigurationError(
            f"parameter '{param.name}' needs a Generator, got {param.generator!r}"
        )
    return param


def _coerce_validator(index: int, item: ValidatorLike) -> Validator:
    if isinstance(item, Validator):
        return item
    if not callable(item):
        raise ConfigurationError(f"validator {index} is not callable: {item!r}")
    name = getattr(item, "__name__", "")
    if not name or name == "<lambda>":
        name = f"validator[{index}]"
    return Validator(name=name, predicate=item)


def check_arity(name: str, fn: Callable[..., Any], count: int) -> None:
    """
    Check that fn accepts exactly `count` positional arguments.

    Raises:
        ConfigurationError: if the generator count cannot bind to fn's signature.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        logger.debug("spec %s: signature of %r not introspectable; skipping arity check", name, fn)
        return

    required = 0
    total = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            total += 1
            if parameter.default is inspect.Parameter.empty:
                required += 1
        elif parameter.kind == inspect.Parameter.KEYWORD_ONLY and parameter.default is inspect.Parameter.empty:
            raise ConfigurationError(
                f"spec '{name}': required keyword-only parameter '{parameter.name}' cannot be generated"
            )

    if not (required <= count <= total):
        expected = str(required) if required == total else f"{required}..{total}"
        raise ConfigurationError(
            f"spec '{name}': {count} generator(s) given but function takes {expected} positional parameter(s)"
        )


def make_spec(
    name: str,
    fn: Callable[..., Any],
    params: Sequence[ParamLike],
    validators: Iterable[ValidatorLike] = (),
) -> Spec:
    """
    Build and check a Spec without registering it.

    Raises:
        ConfigurationError: on empty names, non-callable functions, bad
            parameters, duplicate parameter names or arity mismatch.
    """
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"spec name must be a non-empty string, got {name!r}")
    if not callable(fn):
        raise ConfigurationError(f"spec '{name}': function under test is not callable")

    coerced = tuple(_coerce_param(p) for p in params)
    names = [p.name for p in coerced]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"spec '{name}': duplicate parameter names {duplicates}")

    check_arity(name, fn, len(coerced))

    return Spec(
        name=name,
        fn=fn,
        params=coerced,
        validators=tuple(_coerce_validator(i, v) for i, v in enumerate(validators)),
    )


class SpecRegistry:
    """
    Registry of all declared specs.

    Provides registration (with up-front validation) and lookup by name.
    """

    def __init__(self):
        self._specs: dict[str, Spec] = {}

    def register(
        self,
        name: str,
        fn: Callable[..., Any],
        params: Sequence[ParamLike],
        validators: Iterable[ValidatorLike] = (),
    ) -> Spec:
        """Validate and register a spec; returns the stored Spec."""
        spec = make_spec(name, fn, params, validators)
        self.add(spec)
        return spec

    def add(self, spec: Spec) -> None:
        """Register an already-built Spec."""
        if spec.name in self._specs:
            raise ConfigurationError(f"spec '{spec.name}' is already registered")
        self._specs[spec.name] = spec
        logger.debug(
            "registered spec %s params=%s validators=%d",
            spec.name,
            list(spec.param_names),
            len(spec.validators),
        )

    def get(self, name: str) -> Optional[Spec]:
        """Look up a spec by name."""
        return self._specs.get(name)

    def resolve(self, names: Iterable[str]) -> list[Spec]:
        """
        Look up several specs, preserving order.

        Raises:
            ConfigurationError: if any name is unknown.
        """
        names = list(names)
        missing = [n for n in names if n not in self._specs]
        if missing:
            raise ConfigurationError(
                f"unknown spec(s) {missing}; registered: {sorted(self._specs)}"
            )
        return [self._specs[n] for n in names]

    def list_specs(self) -> list[Spec]:
        """Return all registered specs in registration order."""
        return list(self._specs.values())

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


default_registry = SpecRegistry()


def register_spec(
    name: str,
    fn: Callable[..., Any],
    params: Sequence[ParamLike],
    validators: Iterable[ValidatorLike] = (),
) -> Spec:
    """Register a spec in the process-wide default registry."""
    return default_registry.register(name, fn, params, validators)


def get_spec(name: str) -> Optional[Spec]:
    """Look up a spec in the process-wide default registry."""
    return default_registry.get(name)
