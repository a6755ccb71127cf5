from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from . import config
from .item_bank import load_bank
from .types import Item, ITEM_KINDS

BANDS: tuple[int, ...] = tuple(range(0, 11))


def _band(difficulty: float) -> int:
    return max(BANDS[0], min(BANDS[-1], int(difficulty)))


def _blank_kind() -> dict[int, int]:
    return {band: 0 for band in BANDS}


def audit_items(items: Iterable[Item]) -> dict[str, object]:
    coverage: dict[str, dict[int, int]] = {kind: _blank_kind() for kind in ITEM_KINDS}
    totals = {kind: 0 for kind in ITEM_KINDS}
    totals["missing_target"] = 0
    totals["missing_ipa"] = 0

    for item in items:
        coverage.setdefault(item.kind, _blank_kind())
        coverage[item.kind][_band(item.difficulty)] += 1
        totals[item.kind] = totals.get(item.kind, 0) + 1
        if item.kind == "letter_array" and not item.target:
            totals["missing_target"] += 1
        if item.kind == "word" and not item.ipa:
            totals["missing_ipa"] += 1

    warnings: list[str] = []
    words = coverage["word"]
    for band in config.WORD_BANDS_EXPECTED:
        if words.get(band, 0) < config.BANK_MIN_PER_WORD_BAND:
            warnings.append(
                f"word band {band} has {words.get(band, 0)} (<{config.BANK_MIN_PER_WORD_BAND})"
            )
    if totals["missing_target"]:
        warnings.append(f"{totals['missing_target']} letter_array items missing target")
    if not totals["letter"] and not totals["letter_array"]:
        warnings.append("no letter or letter_array items; young examinees have no entry point")

    return {"coverage": coverage, "warnings": warnings, "totals": totals}


def _format_row(label: str, data: dict[int, int]) -> str:
    parts = [label]
    for band in BANDS:
        parts.append(f"{band:2d}:{data.get(band, 0):4d}")
    return "  ".join(parts)


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[int, int]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Bank Coverage (items per difficulty band) ===")
    for kind in ITEM_KINDS:
        print("  " + _format_row(f"{kind:<12}", coverage.get(kind, {})))

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    totals = summary["totals"]
    print("\nTotals:", totals)


def write_summary(summary: dict[str, object], path: Path = Path("bank_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    print(text)
    return text


def main(_argv: list[str] | None = None) -> int:
    items = load_bank()
    summary = audit_items(items)
    print_report(summary)
    write_summary(summary)
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
