# orr_core/engine.py
from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, Dict, List, Literal, Optional, Sequence, Set
import logging, random

from .types import Item, Participant, Response, ResponseRecord, SessionSummary
from .item_bank import BankLoadError, ItemBank, practice_items
from .config import CATConfig, DEBUG_TRACE, TRACE_FIELDS, make_rng
from .estimator import starting_ability, update_ability, standard_error
from .selector import select_next
from .stopping import is_finished, should_stop


log = logging.getLogger(__name__)

Phase = Literal["awaiting_start", "practice", "testing", "paused", "complete"]
CommandKind = Literal["score", "undo", "pause", "resume"]

AWAITING_START: Phase = "awaiting_start"
PRACTICE: Phase = "practice"
TESTING: Phase = "testing"
PAUSED: Phase = "paused"
COMPLETE: Phase = "complete"


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


@dataclass(frozen=True)
class Command:
    """One inbound signal from the presentation layer."""

    kind: CommandKind
    correct: Optional[bool] = None
    rt: float = 0.0


class CATSession:
    """Adaptive session: select, present, score, re-estimate, check stop.

    The caller owns the session and drives it with ``next_item`` and the
    command methods; nothing here touches module-level state.
    """

    def __init__(
        self,
        bank: ItemBank,
        participant: Optional[Participant] = None,
        cfg: Optional[CATConfig] = None,
        rng: Optional[random.Random] = None,
        practice: Optional[Sequence[Item]] = None,
    ):
        self.bank = bank
        self.participant = participant or Participant()
        self.cfg = cfg or CATConfig()
        self.rng = rng or make_rng(self.cfg)
        if practice is None:
            practice = practice_items() if self.cfg.show_instructions else []
        self.practice: List[Item] = list(practice)

        self.phase: Phase = AWAITING_START
        self._paused_from: Optional[Phase] = None
        self.start_ability: float = 0.0
        self.ability: float = 0.0
        self.responses: List[Response] = []
        self.administered_ids: Set[str] = set()
        self.current_item: Optional[Item] = None
        self.practice_responses: List[Response] = []
        self.stop_reason: Optional[str] = None
        self.audit_events: List[Dict[str, object]] = []
        self._pending: Deque[Command] = deque()

    # ---- lifecycle ----
    def start(self) -> Phase:
        if self.phase != AWAITING_START:
            return self.phase
        if len(self.bank) == 0:
            raise BankLoadError("cannot start a session on an empty item bank")
        p = self.participant
        self.start_ability = starting_ability(p.age, p.education, p.start_point_override, self.cfg)
        self.ability = self.start_ability
        self.phase = PRACTICE if self.practice else TESTING
        log.info(
            "session start age=%s education=%s ability=%.2f phase=%s bank=%d",
            p.age, p.education, self.ability, self.phase, len(self.bank),
        )
        return self.phase

    def _complete(self, reason: str) -> None:
        self.phase = COMPLETE
        self.stop_reason = reason
        self.current_item = None
        log.info(
            "session complete reason=%s items=%d ability=%.3f se=%.3f",
            reason, len(self.responses), self.ability, self.standard_error,
        )

    def _recompute(self) -> float:
        if not self.responses:
            return self.start_ability
        return update_ability(self.responses, self.bank)

    # ---- outbound ----
    @property
    def standard_error(self) -> float:
        return standard_error(self.responses)

    @property
    def items_administered(self) -> int:
        return len(self.responses)

    @property
    def is_complete(self) -> bool:
        return self.phase == COMPLETE

    @property
    def is_paused(self) -> bool:
        return self.phase == PAUSED

    def next_item(self) -> Optional[Item]:
        """Item to render now, or ``None`` when paused or finished.

        An item already under presentation is returned again rather than
        re-selected, so a trial interrupted by a pause resumes unchanged.
        """
        if self.phase == AWAITING_START:
            self.start()
        if self.phase in (PAUSED, COMPLETE):
            return None
        if self.current_item is not None:
            return self.current_item

        if self.phase == PRACTICE:
            idx = len(self.practice_responses)
            if idx < len(self.practice):
                self.current_item = self.practice[idx]
                return self.current_item
            log.info("practice complete after %d items", idx)
            self.phase = TESTING

        if is_finished(self.responses, self.administered_ids, self.bank.ids(), self.cfg):
            self._complete("stop_rule" if should_stop(self.responses, self.cfg) else "bank_exhausted")
            return None
        self.current_item = select_next(self.ability, self.administered_ids, self.bank, self.rng)
        return self.current_item

    # ---- inbound ----
    def record_response(self, correct: bool, rt: float = 0.0) -> Optional[float]:
        """Score the item under presentation; returns the new ability.

        Responses arriving while paused, after completion, or with nothing
        presented are discarded and ``None`` is returned.
        """
        if self.phase == PAUSED:
            log.info("response discarded while paused")
            return None
        item = self.current_item
        if self.phase not in (PRACTICE, TESTING) or item is None:
            log.debug("response discarded: phase=%s current=%s", self.phase, getattr(item, "id", None))
            return None

        resp = Response(item_id=item.id, correct=bool(correct), rt=float(rt or 0.0))
        self.current_item = None
        if self.phase == PRACTICE:
            self.practice_responses.append(resp)
            log.debug("practice item=%s correct=%s", item.id, resp.correct)
            return self.ability

        before = self.ability
        self.responses.append(resp)
        self.administered_ids.add(item.id)
        self.ability = self._recompute()
        self._audit("score", item, resp.correct, before, resp.rt)
        log.debug(
            "score item=%s kind=%s d=%.2f correct=%s ability=%.4f->%.4f se=%.4f n=%d",
            item.id, item.kind, item.difficulty, int(resp.correct),
            before, self.ability, self.standard_error, len(self.responses),
        )
        return self.ability

    def undo_last(self) -> bool:
        """Reverse the most recent response; ``False`` when there is nothing to undo.

        The undone item becomes the current item again so it can be re-scored.
        """
        if self.phase == PRACTICE:
            if not self.practice_responses:
                return False
            last = self.practice_responses.pop()
            self.current_item = next((it for it in self.practice if it.id == last.item_id), None)
            log.debug("practice undo item=%s", last.item_id)
            return True
        if self.phase != TESTING or not self.responses:
            return False

        last = self.responses.pop()
        self.administered_ids.discard(last.item_id)
        before = self.ability
        self.ability = self._recompute()
        self.current_item = self.bank.get(last.item_id)
        self._audit("undo", self.current_item, last.correct, before, last.rt, item_id=last.item_id)
        log.debug("undo item=%s ability=%.4f->%.4f n=%d", last.item_id, before, self.ability, len(self.responses))
        return True

    def pause(self) -> bool:
        if self.phase not in (PRACTICE, TESTING):
            return False
        self._paused_from = self.phase
        self.phase = PAUSED
        log.info("session paused (current=%s)", getattr(self.current_item, "id", None))
        return True

    def resume(self) -> bool:
        if self.phase != PAUSED:
            return False
        self.phase = self._paused_from or TESTING
        self._paused_from = None
        log.info("session resumed (current=%s)", getattr(self.current_item, "id", None))
        return True

    def handle(self, command: Command) -> object:
        if command.kind == "score":
            if command.correct is None:
                log.debug("score command without a correctness flag ignored")
                return None
            return self.record_response(command.correct, command.rt)
        if command.kind == "undo":
            return self.undo_last()
        if command.kind == "pause":
            return self.pause()
        if command.kind == "resume":
            return self.resume()
        raise ValueError(f"unknown command kind {command.kind!r}")

    def submit(self, command: Command) -> None:
        self._pending.append(command)

    def process_pending(self) -> List[object]:
        results: List[object] = []
        while self._pending:
            results.append(self.handle(self._pending.popleft()))
        return results

    # ---- reporting ----
    def _audit(
        self,
        action: str,
        item: Optional[Item],
        correct: bool,
        ability_before: float,
        rt: float,
        item_id: Optional[str] = None,
    ) -> None:
        se = self.standard_error
        event = {
            "t": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "item_id": item_id or (item.id if item else ""),
            "kind": item.kind if item else "",
            "difficulty": float(item.difficulty) if item else 0.0,
            "correct": bool(correct),
            "ability_before": float(ability_before),
            "ability_after": float(self.ability),
            "se_after": float(se),
            "latency_ms": int(round(rt)),
        }
        self.audit_events.append(event)
        _emit_trace(
            action=action,
            item_id=event["item_id"],
            kind=event["kind"],
            difficulty=event["difficulty"],
            correct=int(correct),
            ability_before=ability_before,
            ability_after=self.ability,
            se=se,
        )

    def stats(self) -> Dict[str, object]:
        return {
            "phase": self.phase,
            "items_administered": len(self.responses),
            "correct_responses": sum(1 for r in self.responses if r.correct),
            "practice_responses": len(self.practice_responses),
            "ability": self.ability,
            "standard_error": self.standard_error,
            "stop_reason": self.stop_reason,
        }

    def summary(self) -> SessionSummary:
        n = len(self.responses)
        correct = sum(1 for r in self.responses if r.correct)
        records: List[ResponseRecord] = []
        for r in self.responses:
            item = self.bank.get(r.item_id)
            records.append(ResponseRecord(
                item_id=r.item_id,
                content=item.content if item else None,
                kind=item.kind if item else None,
                difficulty=item.difficulty if item else None,
                correct=r.correct,
                rt=r.rt,
            ))
        return SessionSummary(
            item_count=n,
            correct_count=correct,
            accuracy_percent=round(100.0 * correct / n, 1) if n else 0.0,
            final_ability=update_ability(self.responses, self.bank),
            final_standard_error=standard_error(self.responses),
            responses=records,
            participant=self.participant,
            test_date=datetime.now(timezone.utc).isoformat(),
        )
