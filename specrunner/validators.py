"""
Reusable validator predicates.

Every predicate follows the validator protocol: it is called as
predicate(result, *inputs) and returns a truthy value when the property holds.
The builders return named functions so failure reports stay readable.
"""

from typing import Any, Callable

Predicate = Callable[..., Any]


def is_non_decreasing(result, *inputs) -> bool:
    """True when every element of result is <= its successor."""
    items = list(result)
    return all(a <= b for a, b in zip(items, items[1:]))


def result_is_instance(*types: type) -> Predicate:
    def result_is_instance(result, *inputs) -> bool:
        return isinstance(result, types)

    result_is_instance.__name__ = f"result_is_instance({', '.join(t.__name__ for t in types)})"
    return result_is_instance


def result_in_range(lo, hi) -> Predicate:
    """Inclusive lower bound, exclusive upper bound (None means unbounded)."""
    def result_in_range(result, *inputs) -> bool:
        if lo is not None and result < lo:
            return False
        if hi is not None and result >= hi:
            return False
        return True

    result_in_range.__name__ = f"result_in_range({lo!r}, {hi!r})"
    return result_in_range


def result_equals(expected: Callable[..., Any], name: str = "result_equals") -> Predicate:
    """Result must equal expected(*inputs), an oracle over the same inputs."""
    def result_equals(result, *inputs) -> bool:
        return result == expected(*inputs)

    result_equals.__name__ = name
    return result_equals


def all_of(*predicates: Predicate) -> Predicate:
    """Conjunction of several predicates; short-circuits on the first false one."""
    def all_of(result, *inputs) -> bool:
        return all(p(result, *inputs) for p in predicates)

    names = [getattr(p, "__name__", "?") for p in predicates]
    all_of.__name__ = f"all_of({', '.join(names)})"
    return all_of
