from __future__ import annotations
import os, json, pathlib, random
from dataclasses import dataclass, field
from typing import Dict, Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


MIN_ITEMS: int = 20
MAX_ITEMS: int = 40
TARGET_SE: float = 0.3

ADULT_AGE: int = 19
DEFAULT_AGE_START: float = 3.0
DEFAULT_EDUCATION_START: float = 5.0
START_POINTS_AGE: dict[int, float] = {
    7: 0.5,   # letter arrays
    8: 1.0,   # simple letters
    9: 2.0,   # complex letters
    10: 3.0,  # simple CVC words
    11: 3.5,
    12: 4.0,
    13: 4.5,
    14: 5.0,
    15: 5.5,
    16: 6.0,
    17: 6.5,
    18: 7.0,
}
START_POINTS_EDUCATION: dict[str, float] = {
    "less_than_high_school": 4.0,
    "high_school": 5.0,
    "some_college": 6.0,
    "college": 7.0,
    "graduate": 8.0,
}

# selector schedule
EARLY_ITEMS: int = 3
TOLERANCE_EARLY: float = 1.5
TOLERANCE_LATE: float = 0.5
TIE_TOLERANCE_EARLY: float = 0.2
TIE_TOLERANCE_LATE: float = 0.1
FIRST_PICK_LETTERS_BELOW: float = 2.0
FIRST_PICK_EASY_WORDS_BELOW: float = 3.5
FIRST_PICK_EASY_WORD_MAX: float = 4.0

# ability / SE heuristics
ABILITY_WEIGHT_DIFFICULTY: float = 0.7
ABILITY_WEIGHT_PROPORTION: float = 0.3
PROPORTION_SCALE: float = 10.0
SE_WINDOW: int = 10
SE_MIN_RESPONSES: int = 3

# word sources
GRE_WORDS_URL: str = (
    "https://raw.githubusercontent.com/Isomorpheuss/advanced-english-vocabulary/"
    "master/vocab/GRE%20Master%20Wordlist%205349.csv"
)
BASIC_WORDS_URL: str = (
    "https://raw.githubusercontent.com/first20hours/google-10000-english/"
    "master/google-10000-english-no-swears.txt"
)
IPA_PRIMARY_URL: str = "https://raw.githubusercontent.com/open-dict-data/ipa-dict/master/data/en_US.txt"
IPA_BACKUP_URL: str = "https://raw.githubusercontent.com/menelik3/cmudict-ipa/master/cmudict-ipa.txt"
FETCH_TIMEOUT_SEC: float = 15.0

BASIC_WORD_LIMIT: int = 2000
BASIC_BASE_RANGE: tuple[float, float] = (3.0, 6.0)
GRE_SAMPLE_SIZE: int = 150
GRE_BASE_RANGE: tuple[float, float] = (6.0, 10.0)
GRE_ADVANCED_ABOVE: float = 8.0
WORD_DIFFICULTY_MIN: float = 3.0
WORD_DIFFICULTY_MAX: float = 10.0
FALLBACK_RANK_SPAN: int = 10000
# (rank upper bound, sample size); None = open-ended
FALLBACK_STRATA: tuple[tuple[Optional[int], int], ...] = (
    (100, 15),
    (500, 20),
    (2000, 25),
    (5000, 20),
    (8000, 15),
    (None, 10),
)

BANK_MIN_PER_WORD_BAND: int = 1
WORD_BANDS_EXPECTED: tuple[int, ...] = (3, 4, 5, 6, 7, 8, 9)

SHOW_INSTRUCTIONS: bool = True
PRELOAD_BANK: bool = True
FETCH_IPA: bool = False
AUDIT_EXPORT_ENABLED: bool = True

DEBUG_TRACE: bool = False
DEBUG_SEED: int | None = None
TRACE_FIELDS: tuple[str, ...] = (
    "action",
    "item_id",
    "kind",
    "difficulty",
    "correct",
    "ability_before",
    "ability_after",
    "se",
)
# // env overrides for staging/ops; defaults remain conservative.
MIN_ITEMS = _env_int("ORR_MIN_ITEMS", MIN_ITEMS)
MAX_ITEMS = _env_int("ORR_MAX_ITEMS", MAX_ITEMS)
TARGET_SE = _env_float("ORR_TARGET_SE", TARGET_SE)
FETCH_TIMEOUT_SEC = _env_float("ORR_FETCH_TIMEOUT_SEC", FETCH_TIMEOUT_SEC)
SHOW_INSTRUCTIONS = _env_bool("ORR_SHOW_INSTRUCTIONS", SHOW_INSTRUCTIONS)
PRELOAD_BANK = _env_bool("ORR_PRELOAD_BANK", PRELOAD_BANK)
FETCH_IPA = _env_bool("ORR_FETCH_IPA", FETCH_IPA)
AUDIT_EXPORT_ENABLED = _env_bool("AUDIT_EXPORT_ENABLED", AUDIT_EXPORT_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
_seed_raw = _env_int("DEBUG_SEED", -1)
DEBUG_SEED = _seed_raw if _seed_raw >= 0 else None


@dataclass
class CATConfig:
    min_items: int = MIN_ITEMS
    max_items: int = MAX_ITEMS
    target_se: float = TARGET_SE
    start_points_age: Dict[int, float] = field(default_factory=lambda: dict(START_POINTS_AGE))
    start_points_education: Dict[str, float] = field(default_factory=lambda: dict(START_POINTS_EDUCATION))
    show_instructions: bool = SHOW_INSTRUCTIONS
    preload_bank: bool = PRELOAD_BANK
    seed: Optional[int] = DEBUG_SEED

    def __post_init__(self) -> None:
        if self.min_items < 1 or self.max_items < 1:
            raise ValueError("min_items and max_items must be positive")
        if self.min_items > self.max_items:
            raise ValueError(f"min_items ({self.min_items}) exceeds max_items ({self.max_items})")
        if self.target_se <= 0:
            raise ValueError("target_se must be positive")


_FILE_KEYS = {
    "min_items": int,
    "max_items": int,
    "target_se": float,
    "show_instructions": bool,
    "preload_bank": bool,
    "seed": int,
}


def load_config(path: str | pathlib.Path = "config.json", **overrides) -> CATConfig:
    """Build a CATConfig from defaults, an optional JSON file and keyword overrides.

    Environment overrides are already folded into the module defaults; the
    JSON file may additionally carry ``start_points_age`` (keys are ages) and
    ``start_points_education`` tables.
    """
    raw: dict = {}
    p = pathlib.Path(path)
    if p.exists():
        try: raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): raw = {}
    kwargs: dict = {}
    for key, cast in _FILE_KEYS.items():
        if raw.get(key) is not None:
            kwargs[key] = cast(raw[key])
    ages = raw.get("start_points_age")
    if isinstance(ages, dict):
        kwargs["start_points_age"] = {int(k): float(v) for k, v in ages.items()}
    edu = raw.get("start_points_education")
    if isinstance(edu, dict):
        kwargs["start_points_education"] = {str(k): float(v) for k, v in edu.items()}
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return CATConfig(**kwargs)


def make_rng(cfg: CATConfig | None = None) -> random.Random:
    seed = cfg.seed if cfg is not None else DEBUG_SEED
    if seed is None:
        return random.Random()
    return random.Random(int(seed))
