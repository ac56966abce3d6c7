"""
Generator Module

Generators produce random values of a declared shape on demand:
- OneOf: uniform pick from an enumerated set of literals
- NumericRange: uniform or geometric draw over [lo, hi)
- VectorOf: fixed-length list of independent element draws
- Derived: arbitrary production function fn(rng)
- SuchThat: rejection sampling with a bounded retry budget

Every generator exposes produce(rng=None). Calls are independent of each
other, so a generator never runs out and can be restarted at any point.
When rng is omitted the module-level random source is used; the runner
passes each worker its own random.Random.
"""

import math
import random
import string
from abc import ABC, abstractmethod
from enum import Enum
from itertools import islice
from typing import Any, Callable, Iterator, Optional

from .errors import ConfigurationError, GeneratorExhausted

DEFAULT_MAX_TRIES = 10_000

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31
LONG_MIN = -(2 ** 63)
LONG_MAX = 2 ** 63


class Distribution(str, Enum):
    """Probability law for numeric draws."""
    UNIFORM = "uniform"
    GEOMETRIC = "geometric"  # favours small offsets from lo, mean 1/p


def _source(rng: Optional[random.Random]):
    return rng if rng is not None else random


class Generator(ABC):
    """Abstract base class for all generators."""

    @abstractmethod
    def produce(self, rng: Optional[random.Random] = None) -> Any:
        """Draw one value."""

    def __call__(self, rng: Optional[random.Random] = None) -> Any:
        return self.produce(rng)

    def stream(self, rng: Optional[random.Random] = None) -> Iterator[Any]:
        """Lazy, infinite sequence of draws."""
        while True:
            yield self.produce(rng)

    def sample(self, n: int, rng: Optional[random.Random] = None) -> list[Any]:
        """Materialize the first n draws of a fresh stream."""
        return list(islice(self.stream(rng), n))


class OneOf(Generator):
    """Uniform selection among a fixed set of literals."""

    def __init__(self, values):
        self.values = tuple(values)
        if not self.values:
            raise ConfigurationError("one_of requires at least one value")

    def produce(self, rng=None):
        return _source(rng).choice(self.values)

    def __repr__(self) -> str:
        return f"one_of({', '.join(repr(v) for v in self.values)})"


def _geometric_offset(src, p: float) -> float:
    """
    Draw k - 1 for k >= 1 with P(k) = (1-p)^(k-1) * p, i.e. mean 1/p.

    Returned unfloored as a float; may be inf when p is tiny.
    """
    if p >= 1.0:
        return 0.0
    u = 1.0 - src.random()  # (0, 1]
    return math.log(u) / math.log1p(-p)


class NumericRange(Generator):
    """
    Numeric draw in the half-open interval [lo, hi).

    Uniform draws cover the interval evenly; integer bounds give integers,
    float bounds give floats. Geometric draws (integers only) return
    lo + k - 1 where k is geometric with mean 1/p, so values cluster at lo.
    Geometric draws that land at or past hi are redrawn, up to max_tries.
    A degenerate range (lo == hi) always returns lo.
    """

    def __init__(
        self,
        lo,
        hi,
        distribution: Distribution = Distribution.UNIFORM,
        p: float = 0.5,
        max_tries: int = DEFAULT_MAX_TRIES,
    ):
        if lo > hi:
            raise ConfigurationError(f"range lower bound {lo!r} exceeds upper bound {hi!r}")
        distribution = Distribution(distribution)
        self.integral = isinstance(lo, int) and isinstance(hi, int)
        if distribution == Distribution.GEOMETRIC:
            if not self.integral:
                raise ConfigurationError("geometric distribution requires integer bounds")
            if not (0.0 < p <= 1.0):
                raise ConfigurationError(f"geometric p must be in (0, 1], got {p!r}")
        if max_tries < 1:
            raise ConfigurationError(f"max_tries must be positive, got {max_tries}")
        self.lo = lo
        self.hi = hi
        self.distribution = distribution
        self.p = p
        self.max_tries = max_tries

    def produce(self, rng=None):
        if self.lo == self.hi:
            return self.lo
        src = _source(rng)

        if self.distribution == Distribution.UNIFORM:
            if self.integral:
                return src.randrange(self.lo, self.hi)
            u = src.random()
            value = self.lo * (1.0 - u) + self.hi * u
            # Float rounding can land exactly on hi
            return value if self.lo <= value < self.hi else self.lo

        span = self.hi - self.lo
        for _ in range(self.max_tries):
            offset = _geometric_offset(src, self.p)
            if offset < span:
                return self.lo + int(offset)
        raise GeneratorExhausted(
            f"geometric(p={self.p}) draw stayed outside [{self.lo}, {self.hi}) "
            f"for {self.max_tries} attempts",
            attempts=self.max_tries,
        )

    def __repr__(self) -> str:
        if self.distribution == Distribution.GEOMETRIC:
            return f"geometric({self.lo!r}, {self.hi!r}, p={self.p})"
        return f"uniform({self.lo!r}, {self.hi!r})"


class VectorOf(Generator):
    """Fixed-length list built from n independent element draws."""

    def __init__(self, element: Generator, n: int):
        if not isinstance(element, Generator):
            raise ConfigurationError(f"vector_of element must be a Generator, got {element!r}")
        if not isinstance(n, int) or n < 0:
            raise ConfigurationError(f"vector_of length must be a non-negative int, got {n!r}")
        self.element = element
        self.n = n

    def produce(self, rng=None):
        return [self.element.produce(rng) for _ in range(self.n)]

    def __repr__(self) -> str:
        return f"vector_of({self.element!r}, {self.n})"


class Derived(Generator):
    """
    Generator backed by an arbitrary production function.

    The function receives the random source and may call other generators
    with it, which is how dependent draws are composed.
    """

    def __init__(self, fn: Callable[[Any], Any], name: Optional[str] = None):
        if not callable(fn):
            raise ConfigurationError(f"derived requires a callable, got {fn!r}")
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "derived")

    def produce(self, rng=None):
        return self.fn(_source(rng))

    def __repr__(self) -> str:
        return f"derived({self.name})"


class SuchThat(Generator):
    """Rejection sampler: redraw from element until predicate accepts."""

    def __init__(
        self,
        element: Generator,
        predicate: Callable[[Any], bool],
        max_tries: int = DEFAULT_MAX_TRIES,
    ):
        if not isinstance(element, Generator):
            raise ConfigurationError(f"such_that element must be a Generator, got {element!r}")
        if max_tries < 1:
            raise ConfigurationError(f"max_tries must be positive, got {max_tries}")
        self.element = element
        self.predicate = predicate
        self.max_tries = max_tries

    def produce(self, rng=None):
        for _ in range(self.max_tries):
            value = self.element.produce(rng)
            if self.predicate(value):
                return value
        raise GeneratorExhausted(
            f"no value from {self.element!r} accepted within {self.max_tries} attempts",
            attempts=self.max_tries,
        )

    def __repr__(self) -> str:
        return f"such_that({self.element!r})"


# =============================================================================
# COMBINATORS
# =============================================================================

def one_of(*values) -> OneOf:
    return OneOf(values)


def numeric_range(lo, hi, distribution=Distribution.UNIFORM, p: float = 0.5) -> NumericRange:
    return NumericRange(lo, hi, distribution=distribution, p=p)


def uniform(lo, hi) -> NumericRange:
    return NumericRange(lo, hi, Distribution.UNIFORM)


def geometric(lo: int, hi: int, p: float = 0.5) -> NumericRange:
    return NumericRange(lo, hi, Distribution.GEOMETRIC, p=p)


def vector_of(element: Generator, n: int) -> VectorOf:
    return VectorOf(element, n)


def derived(fn: Callable[[Any], Any], name: Optional[str] = None) -> Derived:
    return Derived(fn, name=name)


def such_that(element: Generator, predicate, max_tries: int = DEFAULT_MAX_TRIES) -> SuchThat:
    return SuchThat(element, predicate, max_tries=max_tries)


def distinct_from(element: Generator, excluded, max_tries: int = DEFAULT_MAX_TRIES) -> SuchThat:
    """Draws from element that are never equal to excluded."""
    return SuchThat(element, lambda value: value != excluded, max_tries=max_tries)


def integers(lo: int = INT_MIN, hi: int = INT_MAX) -> NumericRange:
    """Uniform integers; defaults to the signed 32-bit range."""
    return uniform(lo, hi)


def longs() -> NumericRange:
    """Uniform integers over the signed 64-bit range."""
    return uniform(LONG_MIN, LONG_MAX)


def booleans() -> OneOf:
    return one_of(True, False)


def text(max_size: int = 16, alphabet: str = string.ascii_letters + string.digits) -> Derived:
    """Strings of length [0, max_size] drawn from alphabet."""
    if max_size < 0:
        raise ConfigurationError(f"text max_size must be non-negative, got {max_size}")
    if not alphabet:
        raise ConfigurationError("text alphabet must not be empty")

    def draw_text(src) -> str:
        size = src.randrange(max_size + 1)
        return "".join(src.choice(alphabet) for _ in range(size))

    return derived(draw_text, name=f"text(max_size={max_size})")
