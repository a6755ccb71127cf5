from __future__ import annotations
from typing import AbstractSet, Optional, Sequence

from .config import CATConfig
from .estimator import standard_error
from .types import Response


def should_stop(responses: Sequence[Response], cfg: Optional[CATConfig] = None) -> bool:
    """Minimum first, then the hard cap, then the precision target."""
    cfg = cfg or CATConfig()
    n = len(responses)
    if n < cfg.min_items:
        return False
    if n >= cfg.max_items:
        return True
    return standard_error(responses) < cfg.target_se


def is_finished(
    responses: Sequence[Response],
    administered_ids: AbstractSet[str],
    bank_ids: AbstractSet[str],
    cfg: Optional[CATConfig] = None,
) -> bool:
    """``should_stop`` or nothing left to administer."""
    return should_stop(responses, cfg) or not (set(bank_ids) - set(administered_ids))
