from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Literal, Tuple, Union

ItemKind = Literal["letter", "word", "letter_array"]
ITEM_KINDS: Tuple[str, ...] = ("letter", "word", "letter_array")

Content = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class Item:
    id: str
    content: Content
    kind: ItemKind
    difficulty: float
    target: Optional[str] = None
    ipa: Optional[str] = None
    properties: Dict[str, object] = field(default_factory=dict, compare=False)

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def display(self) -> str:
        if isinstance(self.content, tuple):
            return " ".join(self.content)
        return self.content

    @classmethod
    def from_dict(cls, raw: Dict[str, object]) -> "Item":
        kind = str(raw.get("kind") or raw.get("type") or "")
        if kind not in ITEM_KINDS:
            raise ValueError(f"unknown item kind {kind!r} for {raw.get('id')!r}")
        content = raw.get("content")
        if isinstance(content, (list, tuple)):
            content = tuple(str(c) for c in content)
        else:
            content = str(content)
        target = raw.get("target")
        if kind == "letter_array":
            if not target or not isinstance(content, tuple) or target not in content:
                raise ValueError(f"letter_array {raw.get('id')!r} needs a target among its choices")
        return cls(
            id=str(raw["id"]),
            content=content,
            kind=kind,  # type: ignore[arg-type]
            difficulty=float(raw["difficulty"]),  # type: ignore[arg-type]
            target=str(target) if target else None,
            ipa=raw.get("ipa") or None,  # type: ignore[arg-type]
            properties=dict(raw.get("properties") or {}),  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class Response:
    item_id: str
    correct: bool
    rt: float = 0.0

    def __post_init__(self) -> None:
        if self.rt is None or not math.isfinite(self.rt) or self.rt < 0:
            object.__setattr__(self, "rt", 0.0)


@dataclass
class Participant:
    age: int = 10
    education: str = "high_school"
    start_point_override: Optional[float] = None


@dataclass
class ResponseRecord:
    item_id: str
    content: Optional[Content]
    kind: Optional[str]
    difficulty: Optional[float]
    correct: bool
    rt: float


@dataclass
class SessionSummary:
    item_count: int
    correct_count: int
    accuracy_percent: float
    final_ability: float
    final_standard_error: float
    responses: List[ResponseRecord] = field(default_factory=list)
    participant: Participant = field(default_factory=Participant)
    test_date: str = ""
