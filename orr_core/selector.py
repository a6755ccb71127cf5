# orr_core/selector.py
from __future__ import annotations

import logging
import random
from typing import AbstractSet, Iterable, List, Optional

from . import config
from .types import Item

log = logging.getLogger(__name__)

_EPS = 1e-9


def _first_pick_filter(items: List[Item], ability: float) -> Optional[List[Item]]:
    """Kind restriction applied to the very first item only.

    Returns ``None`` when no restriction applies at this ability.
    """
    if ability < config.FIRST_PICK_LETTERS_BELOW:
        return [it for it in items if it.kind in ("letter", "letter_array")]
    if ability < config.FIRST_PICK_EASY_WORDS_BELOW:
        return [
            it for it in items
            if it.kind == "letter"
            or (it.kind == "word" and it.difficulty < config.FIRST_PICK_EASY_WORD_MAX)
        ]
    return None


def select_next(
    ability: float,
    administered_ids: AbstractSet[str] | Iterable[str],
    items: Iterable[Item],
    rng: Optional[random.Random] = None,
) -> Optional[Item]:
    """Pick the next item whose difficulty best matches ``ability``.

    Candidates narrow coarse-to-fine: a wide difficulty window for the first
    few items and a narrow one afterwards, plus a kind restriction on the
    very first pick.  A narrowing step that would leave nothing falls back to
    the larger set it started from.  Near-ties are broken at random so the
    item order is not predictable.
    """

    administered = set(administered_ids)
    available = [it for it in items if it.id not in administered]
    if not available:
        log.debug("selector exhausted: %d administered", len(administered))
        return None
    available.sort(key=lambda it: it.id)

    early = len(administered) < config.EARLY_ITEMS
    tolerance = config.TOLERANCE_EARLY if early else config.TOLERANCE_LATE
    in_window = [it for it in available if abs(it.difficulty - ability) <= tolerance + _EPS]

    tiers: List[List[Item]] = []
    if not administered:
        restricted = _first_pick_filter(in_window, ability)
        if restricted is not None:
            tiers.append(restricted)
            tiers.append(_first_pick_filter(available, ability) or [])
    tiers.extend([in_window, available])
    candidates = next(tier for tier in tiers if tier)

    candidates = sorted(candidates, key=lambda it: abs(it.difficulty - ability))
    best = abs(candidates[0].difficulty - ability)
    tie = config.TIE_TOLERANCE_EARLY if early else config.TIE_TOLERANCE_LATE
    tied = [it for it in candidates if abs(it.difficulty - ability) <= best + tie + _EPS]

    rng = rng or random.Random()
    pick = tied[rng.randrange(len(tied))]
    log.debug(
        "select ability=%.3f administered=%d tolerance=%.1f candidates=%d tied=%d -> %s (d=%.2f)",
        ability, len(administered), tolerance, len(candidates), len(tied), pick.id, pick.difficulty,
    )
    return pick
