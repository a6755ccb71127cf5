from __future__ import annotations

import pytest

from orr_core.config import CATConfig
from orr_core.stopping import is_finished, should_stop
from orr_core.types import Response


def _responses(pattern: list[bool]) -> list[Response]:
    return [Response(f"i{idx}", ok) for idx, ok in enumerate(pattern)]


@pytest.mark.parametrize("pattern", [[True] * 3, [False] * 3, [True, False, True]])
def test_fixed_length_run_stops_after_three(pattern):
    cfg = CATConfig(min_items=3, max_items=3)
    assert should_stop(_responses(pattern), cfg) is True
    assert should_stop(_responses(pattern[:2]), cfg) is False


def test_minimum_holds_even_with_perfect_precision():
    cfg = CATConfig(min_items=5, max_items=10, target_se=0.3)
    assert should_stop(_responses([True] * 4), cfg) is False


def test_cap_stops_regardless_of_precision():
    cfg = CATConfig(min_items=2, max_items=4, target_se=0.01)
    assert should_stop(_responses([True, False, True, False]), cfg) is True


def test_precision_target_between_bounds():
    cfg = CATConfig(min_items=3, max_items=10, target_se=0.2)
    assert should_stop(_responses([True, False, True]), cfg) is False
    assert should_stop(_responses([True] * 5), cfg) is True


def test_exhausted_bank_finishes_session():
    cfg = CATConfig(min_items=5, max_items=10)
    responses = _responses([True, True])
    assert is_finished(responses, {"i0", "i1"}, {"i0", "i1"}, cfg) is True
    assert is_finished(responses, {"i0", "i1"}, {"i0", "i1", "i2"}, cfg) is False


def test_config_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        CATConfig(min_items=10, max_items=5)
