"""Helpers to export session summaries and per-step audit traces in JSON/CSV formats."""
from __future__ import annotations

from dataclasses import asdict
from typing import Iterable, List, Dict, Any
import csv
import io

from .types import SessionSummary

_AUDIT_FIELDS: tuple[str, ...] = (
    "t",
    "action",
    "item_id",
    "kind",
    "difficulty",
    "correct",
    "ability_before",
    "ability_after",
    "se_after",
    "latency_ms",
)

_RESPONSE_HEADER: tuple[str, ...] = (
    "Item ID",
    "Item Content",
    "Item Type",
    "Difficulty",
    "Correct",
    "Response Time",
)


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, (list, tuple)):
        return " ".join(str(c) for c in content)
    return str(content)


def summary_to_json(summary: SessionSummary) -> Dict[str, Any]:
    """Return the JSON-safe export payload for a finished session."""

    return {
        "participant": asdict(summary.participant),
        "summary": {
            "item_count": summary.item_count,
            "correct_count": summary.correct_count,
            "accuracy_percent": summary.accuracy_percent,
            "final_ability": summary.final_ability,
            "final_standard_error": summary.final_standard_error,
            "test_date": summary.test_date,
        },
        "responses": [
            {
                "item_id": r.item_id,
                "content": list(r.content) if isinstance(r.content, tuple) else r.content,
                "kind": r.kind,
                "difficulty": r.difficulty,
                "correct": r.correct,
                "rt": r.rt,
            }
            for r in summary.responses
        ],
    }


def summary_to_csv(summary: SessionSummary) -> str:
    """Per-response table followed by a two-column summary block."""

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(_RESPONSE_HEADER)
    for r in summary.responses:
        writer.writerow([
            r.item_id,
            _content_text(r.content),
            r.kind or "",
            "" if r.difficulty is None else r.difficulty,
            "true" if r.correct else "false",
            r.rt,
        ])
    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Items", summary.item_count])
    writer.writerow(["Correct Responses", summary.correct_count])
    writer.writerow(["Accuracy", f"{summary.accuracy_percent}%"])
    writer.writerow(["Final Ability", summary.final_ability])
    writer.writerow(["Standard Error", summary.final_standard_error])
    writer.writerow(["Age", summary.participant.age])
    writer.writerow(["Education", summary.participant.education])
    return buf.getvalue()


def _normalize_event(event: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _AUDIT_FIELDS:
        val = event.get(key)
        if key == "latency_ms":
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key in {"difficulty", "ability_before", "ability_after", "se_after"}:
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        elif key == "correct":
            out[key] = bool(val)
        else:
            out[key] = "" if val is None else str(val)
    return out


def audit_to_json(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for audit export."""

    normalized: List[Dict[str, Any]] = [_normalize_event(evt or {}) for evt in events]
    return {"events": normalized}


def audit_to_csv(events: Iterable[Dict[str, Any]]) -> str:
    """Render audit events as CSV with a fixed header."""

    normalized = [_normalize_event(evt or {}) for evt in events]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_AUDIT_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["summary_to_json", "summary_to_csv", "audit_to_json", "audit_to_csv"]
