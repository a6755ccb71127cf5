from __future__ import annotations

import json
import logging
import math
import random
from typing import List, Optional

from .config import CATConfig, DEBUG_SEED, DEBUG_TRACE, TRACE_FIELDS
from .engine import CATSession
from .exports import summary_to_json
from .item_bank import ItemBank
from .types import Item, Participant, SessionSummary


def _maybe_enable_trace() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if DEBUG_TRACE:
        logging.getLogger("orr_core.engine").setLevel(logging.INFO)


def _synthetic_bank() -> ItemBank:
    items: List[Item] = []
    for idx, letter in enumerate("ABCDEFGHIJ"):
        items.append(Item(id=f"smoke_L{idx}", content=letter, kind="letter", difficulty=0.5 + 0.2 * idx))
    items.append(Item(id="smoke_LA0", content=("A", "B", "C"), kind="letter_array", target="A", difficulty=0.3))
    items.append(Item(id="smoke_LA1", content=("M", "N", "W"), kind="letter_array", target="N", difficulty=1.2))
    for idx in range(80):
        items.append(Item(id=f"smoke_W{idx}", content=f"word{idx}", kind="word", difficulty=3.0 + 7.0 * idx / 80))
    return ItemBank(items)


def _p_correct(true_ability: float, difficulty: float) -> float:
    return 1.0 / (1.0 + math.exp(-(true_ability - difficulty)))


def simulate_session(
    bank: ItemBank,
    true_ability: float,
    cfg: Optional[CATConfig] = None,
    rng: Optional[random.Random] = None,
    participant: Optional[Participant] = None,
) -> SessionSummary:
    """Drive a full session with a logistic simulated reader.

    Practice items are always read correctly; test items are read correctly
    with probability ``sigma(true_ability - difficulty)``.
    """

    rng = rng or random.Random(DEBUG_SEED)
    session = CATSession(bank, participant or Participant(age=10), cfg, rng=rng)
    while True:
        item = session.next_item()
        if item is None:
            break
        if session.phase == "practice":
            session.record_response(True, 800.0)
            continue
        correct = rng.random() < _p_correct(true_ability, item.difficulty)
        session.record_response(correct, rng.uniform(400.0, 2500.0))
    return session.summary()


def run_smoke_session() -> None:
    _maybe_enable_trace()
    log = logging.getLogger(__name__)
    log.info("trace fields: %s", ", ".join(TRACE_FIELDS))
    bank = _synthetic_bank()
    for true_ability in (1.0, 4.0, 8.0):
        summary = simulate_session(bank, true_ability, CATConfig(), rng=random.Random(7))
        payload = summary_to_json(summary)
        log.info("true_ability=%.1f summary=%s", true_ability, json.dumps(payload["summary"]))


if __name__ == "__main__":  # pragma: no cover - developer utility
    run_smoke_session()
