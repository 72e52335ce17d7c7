"""Threshold table lookup and validation."""

from typing import List, Optional, Sequence

from brandlens.schemas.scoring import ScoringThreshold


def find_threshold(value: float, thresholds: Sequence[ScoringThreshold]) -> Optional[ScoringThreshold]:
    """Return the first threshold, in declaration order, whose range contains ``value``."""
    for threshold in thresholds:
        if threshold.contains(value):
            return threshold
    return None


def bands(
    edges: Sequence[float],
    scores: Sequence[float],
    descriptions: Optional[Sequence[str]] = None,
) -> List[ScoringThreshold]:
    """Build a contiguous table: ``(-inf, e0) (e0, e1) ... [en, +inf)``.

    ``scores`` must have one more entry than ``edges``.
    """
    if len(scores) != len(edges) + 1:
        raise ValueError("bands() needs exactly one more score than edges")
    bounds = [None, *edges, None]
    descriptions = descriptions or [""] * len(scores)
    return [
        ScoringThreshold(min=bounds[i], max=bounds[i + 1], score=scores[i], description=descriptions[i])
        for i in range(len(scores))
    ]


def check_threshold_table(thresholds: Sequence[ScoringThreshold]) -> List[str]:
    """List the problems that keep a table from covering every real number exactly once.

    A valid table is declared in ascending order, opens with an unbounded
    ``min``, closes with an unbounded ``max`` and has each ``max`` equal to
    the next ``min``.
    """
    if not thresholds:
        return ["table is empty"]

    problems = []
    if thresholds[0].min is not None:
        problems.append(f"values below {thresholds[0].min} match no threshold")
    if thresholds[-1].max is not None:
        problems.append(f"values at or above {thresholds[-1].max} match no threshold")

    for index, threshold in enumerate(thresholds):
        if threshold.min is not None and threshold.max is not None and threshold.min >= threshold.max:
            problems.append(f"threshold {index} has an empty range [{threshold.min}, {threshold.max})")
        if index == len(thresholds) - 1:
            break
        following = thresholds[index + 1]
        if threshold.max is None or following.min is None:
            problems.append(f"thresholds {index} and {index + 1} overlap")
        elif threshold.max < following.min:
            problems.append(f"gap between {threshold.max} and {following.min}")
        elif threshold.max > following.min:
            problems.append(f"thresholds {index} and {index + 1} overlap")
    return problems
