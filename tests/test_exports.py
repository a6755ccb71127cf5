from __future__ import annotations

import csv
import io

from orr_core.exports import audit_to_csv, audit_to_json, summary_to_csv, summary_to_json
from orr_core.types import Participant, ResponseRecord, SessionSummary


def _summary() -> SessionSummary:
    return SessionSummary(
        item_count=2,
        correct_count=1,
        accuracy_percent=50.0,
        final_ability=2.45,
        final_standard_error=1.0,
        responses=[
            ResponseRecord("L1", "A", "letter", 0.5, True, 812.0),
            ResponseRecord("LA2", ("M", "N", "W"), "letter_array", 1.2, False, 1500.5),
        ],
        participant=Participant(age=9, education="high_school"),
        test_date="2024-01-01T00:00:00+00:00",
    )


def test_summary_json_is_serializable_shape():
    payload = summary_to_json(_summary())
    assert payload["participant"] == {"age": 9, "education": "high_school", "start_point_override": None}
    assert payload["summary"]["accuracy_percent"] == 50.0
    assert payload["summary"]["test_date"].startswith("2024-01-01")
    assert payload["responses"][1]["content"] == ["M", "N", "W"]
    assert payload["responses"][0]["correct"] is True


def test_summary_csv_has_response_rows_and_summary_block():
    rows = list(csv.reader(io.StringIO(summary_to_csv(_summary()))))
    assert rows[0] == ["Item ID", "Item Content", "Item Type", "Difficulty", "Correct", "Response Time"]
    assert rows[1] == ["L1", "A", "letter", "0.5", "true", "812.0"]
    assert rows[2][:2] == ["LA2", "M N W"]
    assert rows[2][4] == "false"
    assert rows[3] == []
    tail = {r[0]: r[1] for r in rows[5:]}
    assert rows[4] == ["Summary"]
    assert tail["Total Items"] == "2"
    assert tail["Accuracy"] == "50.0%"
    assert tail["Age"] == "9"


def test_audit_exports_use_fixed_columns():
    events = [{"action": "score", "item_id": "W3", "difficulty": "4.2", "correct": 1, "latency_ms": "oops"}]
    payload = audit_to_json(events)
    evt = payload["events"][0]
    assert evt["difficulty"] == 4.2
    assert evt["latency_ms"] == 0
    assert evt["correct"] is True
    assert evt["kind"] == ""

    text = audit_to_csv(events)
    header = text.splitlines()[0]
    assert header == "t,action,item_id,kind,difficulty,correct,ability_before,ability_after,se_after,latency_ms"
