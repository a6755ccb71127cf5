from __future__ import annotations

import random

import pytest

from orr_core.config import CATConfig
from orr_core.item_bank import ItemBank
from orr_core.types import Item, Participant


def build_synthetic_bank(
    *,
    letters: int = 10,
    letter_arrays: int = 3,
    words: int = 40,
    word_range: tuple[float, float] = (3.0, 10.0),
) -> ItemBank:
    """Create a deterministic synthetic bank for tests and smoke runs."""

    items: list[Item] = []
    for idx in range(letters):
        items.append(
            Item(
                id=f"L{idx + 1}",
                content=chr(ord("A") + idx % 26),
                kind="letter",
                difficulty=round(0.5 + 0.2 * idx, 2),
            )
        )
    for idx in range(letter_arrays):
        items.append(
            Item(
                id=f"LA{idx + 1}",
                content=("A", "B", "C", "D"),
                kind="letter_array",
                target="ABCD"[idx % 4],
                difficulty=round(0.3 + 0.4 * idx, 2),
            )
        )
    low, high = word_range
    for idx in range(words):
        items.append(
            Item(
                id=f"W{idx + 1}",
                content=f"word{idx + 1}",
                kind="word",
                difficulty=round(low + (high - low) * idx / max(1, words - 1), 3),
                properties={"source": "synthetic", "frequency_rank": idx + 1},
            )
        )
    return ItemBank(items)


class FirstChoice(random.Random):
    """Random source whose tie-breaks always take the first candidate."""

    def randrange(self, *args, **kwargs):  # type: ignore[override]
        return 0


class LastChoice(random.Random):
    def randrange(self, start, stop=None, *args, **kwargs):  # type: ignore[override]
        return (start if stop is None else stop) - 1


@pytest.fixture
def synthetic_bank() -> ItemBank:
    return build_synthetic_bank()


@pytest.fixture
def child() -> Participant:
    return Participant(age=10, education="high_school")


@pytest.fixture
def short_cfg() -> CATConfig:
    return CATConfig(min_items=5, max_items=10, target_se=0.3, show_instructions=False, seed=1)
