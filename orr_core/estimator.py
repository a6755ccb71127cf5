"""Ability and precision heuristics used by the adaptive session.

These are simple scoring rules rather than an IRT model: the
ability estimate blends the difficulty of correctly read items with the raw
proportion correct, and the standard error is the standard error of the mean
of recent correctness.  Both stay on the item difficulty scale (roughly 0-10)
so the selector can compare them directly with item difficulties.
"""
from __future__ import annotations

import math
from typing import Mapping, Optional, Protocol, Sequence

from . import config
from .config import CATConfig
from .types import Item, Response

__all__ = [
    "starting_ability",
    "update_ability",
    "standard_error",
]


class _ItemLookup(Protocol):
    def get(self, item_id: str) -> Optional[Item]: ...


def starting_ability(
    age: Optional[int],
    education: Optional[str],
    override: Optional[float] = None,
    cfg: Optional[CATConfig] = None,
) -> float:
    """Initial ability from demographics.

    Parameters
    ----------
    age: int | None
        Examinee age in years. Below the adult threshold the per-age table
        is used.
    education: str | None
        Education category, consulted for adults only.
    override: float | None
        Explicit starting point; when given it is returned verbatim.
    """

    if override is not None:
        return float(override)
    ages: Mapping[int, float] = cfg.start_points_age if cfg else config.START_POINTS_AGE
    edu: Mapping[str, float] = cfg.start_points_education if cfg else config.START_POINTS_EDUCATION
    if age is None:
        return config.DEFAULT_AGE_START
    if age < config.ADULT_AGE:
        return float(ages.get(int(age), config.DEFAULT_AGE_START))
    return float(edu.get(education or "", config.DEFAULT_EDUCATION_START))


def update_ability(responses: Sequence[Response], bank: _ItemLookup) -> float:
    """Blend difficulty-weighted success with proportion correct.

    ``0.7 * (sum of difficulties of correct items / n) + 0.3 * (p * 10)``.
    Responses whose item is no longer in ``bank`` still count towards ``n``
    and the proportion, but contribute no difficulty.
    """

    if not responses:
        return 0.0
    n = len(responses)
    sum_difficulty = 0.0
    sum_correct = 0.0
    for r in responses:
        item = bank.get(r.item_id)
        if item is None:
            continue
        sum_difficulty += item.difficulty
        if r.correct:
            sum_correct += item.difficulty

    proportion = sum(1 for r in responses if r.correct) / n
    weighted = sum_correct / n if sum_difficulty > 0 else 0.0
    return (
        config.ABILITY_WEIGHT_DIFFICULTY * weighted
        + config.ABILITY_WEIGHT_PROPORTION * (proportion * config.PROPORTION_SCALE)
    )


def standard_error(responses: Sequence[Response]) -> float:
    """Standard error of mean correctness over the most recent window."""

    if len(responses) < config.SE_MIN_RESPONSES:
        return 1.0
    window = [1.0 if r.correct else 0.0 for r in responses[-config.SE_WINDOW:]]
    n = len(window)
    mean = sum(window) / n
    variance = sum((v - mean) ** 2 for v in window) / n
    return math.sqrt(variance) / math.sqrt(n)
