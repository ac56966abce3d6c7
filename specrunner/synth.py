"""
Input synthesizer: one draw per declared parameter, in declared order.
"""

import random
from typing import Optional

from .errors import GeneratorExhausted
from .spec import Spec


def draw(spec: Spec, rng: Optional[random.Random] = None) -> tuple:
    """
    Draw a fresh input tuple for spec.

    Each parameter's generator is invoked exactly once, in declared order.

    Raises:
        GeneratorExhausted: if any generator gives up; the error names the parameter.
    """
    values = []
    for param in spec.params:
        try:
            values.append(param.generator.produce(rng))
        except GeneratorExhausted as exc:
            raise exc.with_param(param.name) from exc
    return tuple(values)


def describe_inputs(spec: Spec, inputs: tuple) -> dict[str, str]:
    """Map parameter names to the repr of their drawn values."""
    return {param.name: repr(value) for param, value in zip(spec.params, inputs)}
