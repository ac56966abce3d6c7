"""
Sample Specs Module

Small domain functions used to exercise the engine:
- get_available_scores(dice): yahtzee scorer
- naive_merge_left_right: recursive merge (one frame per element)
- merge_left_right: iterative merge
- build_sample_registry() -> SpecRegistry with the demonstration specs

The recursive merge is deliberately left as is: on large inputs it hits the
interpreter recursion limit, which the engine reports as a faulted failure.
"""

from typing import Callable, Optional

from .generators import derived, distinct_from, integers, one_of, uniform, vector_of
from .spec import SpecRegistry
from .validators import is_non_decreasing, result_is_instance

DICE_FACES = (1, 2, 3, 4, 5, 6)
DICE_COUNT = 5
MERGE_MAX_N = 200_000


def get_available_scores(dice) -> dict[str, Optional[int]]:
    """Scores available for a throw; yahtzee only when every die shows the same face."""
    dice = list(dice)
    same = bool(dice) and all(d == dice[0] for d in dice)
    return {"yahtzee_score": sum(dice) if same else None}


def naive_merge_left_right(left, right) -> list:
    """Merge two sorted sequences, recursing once per element."""
    def merge_from(i, j):
        if i == len(left) and j == len(right):
            return []
        if i == len(left):
            return list(right[j:])
        if j == len(right):
            return list(left[i:])
        if left[i] < right[j]:
            return [left[i]] + merge_from(i + 1, j)
        return [right[j]] + merge_from(i, j + 1)

    return merge_from(0, 0)


def merge_left_right(left, right) -> list:
    """Merge two sorted sequences with an explicit accumulator."""
    merged = []
    i = j = 0
    while i < len(left) and j < len(right):
        if left[i] < right[j]:
            merged.append(left[i])
            i += 1
        else:
            merged.append(right[j])
            j += 1
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged


def merge_halves(n: int, merge: Callable[[list, list], list] = merge_left_right) -> list:
    """Split range(n) at n // 2 and merge the halves back together."""
    values = list(range(n))
    return merge(values[: n // 2], values[n // 2:])


# =============================================================================
# GENERATORS
# =============================================================================

dice_throw = one_of(*DICE_FACES)


def _yahtzee_throw(rng) -> list[int]:
    value = dice_throw.produce(rng)
    return [value] * DICE_COUNT


def _non_yahtzee_throw(rng) -> list[int]:
    first = dice_throw.produce(rng)
    others = distinct_from(dice_throw, first)
    return [first] + [others.produce(rng) for _ in range(DICE_COUNT - 1)]


yahtzee_throw = derived(_yahtzee_throw, name="yahtzee_throw")
non_yahtzee_throw = derived(_non_yahtzee_throw, name="non_yahtzee_throw")


# =============================================================================
# SPECS
# =============================================================================

def add(a, b):
    return a + b


def score_repeated_die(dice_value):
    return get_available_scores([dice_value] * DICE_COUNT)


def naive_merge_halves(n):
    return merge_halves(n, naive_merge_left_right)


def iterative_merge_halves(n):
    return merge_halves(n, merge_left_right)


def result_is_non_negative(result, *inputs) -> bool:
    return result >= 0


def yahtzee_is_five_times_value(result, dice_value) -> bool:
    return result["yahtzee_score"] == DICE_COUNT * dice_value


def yahtzee_is_sum_of_dice(result, dice) -> bool:
    return result["yahtzee_score"] == sum(dice)


def yahtzee_unavailable(result, dice) -> bool:
    return result["yahtzee_score"] is None


def build_sample_registry() -> SpecRegistry:
    """
    Build a registry holding the demonstration specs.

    Expected outcomes:
    - integers-closed-over-addition: PASSED
    - integer-addition-is-always-positive: FAILED (negative sums)
    - yahtzee-score-available-when-all-dice-are-the-same: PASSED
    - yahtzee-score-not-available-when-dice-are-not-the-same: FAILED (equal dice drawn)
    - yahtzee-score-available-when-all-dice-are-the-same-2: PASSED
    - yahtzee-score-not-available-when-dice-are-not-the-same-2: PASSED
    - merge-result-is-ordered-with-limits: FAILED (RecursionError on large n)
    - merge-result-is-ordered-with-limits-improved: PASSED
    """
    registry = SpecRegistry()

    registry.register(
        "integers-closed-over-addition",
        add,
        [("a", integers()), ("b", integers())],
        [result_is_instance(int)],
    )
    registry.register(
        "integer-addition-is-always-positive",
        add,
        [("a", uniform(-10, 10)), ("b", uniform(-10, 10))],
        [result_is_non_negative],
    )
    registry.register(
        "yahtzee-score-available-when-all-dice-are-the-same",
        score_repeated_die,
        [("dice_value", dice_throw)],
        [yahtzee_is_five_times_value],
    )
    registry.register(
        "yahtzee-score-not-available-when-dice-are-not-the-same",
        get_available_scores,
        [("dice", vector_of(dice_throw, DICE_COUNT))],
        [yahtzee_unavailable],
    )
    registry.register(
        "yahtzee-score-available-when-all-dice-are-the-same-2",
        get_available_scores,
        [("dice", yahtzee_throw)],
        [yahtzee_is_sum_of_dice],
    )
    registry.register(
        "yahtzee-score-not-available-when-dice-are-not-the-same-2",
        get_available_scores,
        [("dice", non_yahtzee_throw)],
        [yahtzee_unavailable],
    )
    # No unbounded merge spec: a full-int-range n would allocate lists of
    # billions of elements and exhaust memory before any ordering is checked.
    registry.register(
        "merge-result-is-ordered-with-limits",
        naive_merge_halves,
        [("n", uniform(0, MERGE_MAX_N))],
        [is_non_decreasing],
    )
    registry.register(
        "merge-result-is-ordered-with-limits-improved",
        iterative_merge_halves,
        [("n", uniform(0, MERGE_MAX_N))],
        [is_non_decreasing],
    )
    return registry
