"""Word sources for the item bank.

Words come from two public lists: a GRE master wordlist for advanced
vocabulary and a frequency-ranked list of common English words.  Retrieval is
best effort; when the primary sources cannot be read the loader falls back to
the common list alone, and when that fails too the word portion of the bank is
simply empty.  Network access goes through a ``fetch(url) -> str`` callable so
callers and tests can substitute their own transport.
"""
from __future__ import annotations

import logging
import random
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from . import config
from .types import Item

log = logging.getLogger(__name__)

Fetcher = Callable[[str], str]

_VOWEL_RX = re.compile(r"[aeiou]", re.I)
_FIRST_COLUMN_RX = re.compile(r"^([^,\t]+)")
_VARIANT_RX = re.compile(r"\(\d+\)$")


def http_fetch(url: str) -> str:
    resp = httpx.get(url, timeout=config.FETCH_TIMEOUT_SEC, follow_redirects=True)
    resp.raise_for_status()
    return resp.text


def _clamp_word(value: float) -> float:
    return max(config.WORD_DIFFICULTY_MIN, min(config.WORD_DIFFICULTY_MAX, value))


def interpolate(rank: int, size: int, low: float, high: float) -> float:
    """Linear base difficulty for the ``rank``-th (0-based) word of ``size``."""
    if size <= 0:
        return low
    return low + (rank / size) * (high - low)


def word_difficulty(word: str, base: float) -> float:
    """Adjust a rank-derived base difficulty for the surface form of ``word``."""
    difficulty = base
    n = len(word)
    if n > 12:
        difficulty += 1.5
    elif n > 8:
        difficulty += 0.7
    elif n > 6:
        difficulty += 0.3
    elif n < 4:
        difficulty -= 0.5

    if "ph" in word or "gh" in word:
        difficulty += 0.3
    if "tion" in word or "sion" in word:
        difficulty += 0.4
    if "ough" in word or "augh" in word:
        difficulty += 0.5
    return _clamp_word(difficulty)


def rank_difficulty(rank: int) -> float:
    """Frequency-rank-only difficulty used by the fallback word source."""
    return _clamp_word(3.0 + (rank / config.FALLBACK_RANK_SPAN) * 7.0)


def parse_gre_words(text: str) -> List[str]:
    words: List[str] = []
    for line in text.splitlines()[1:]:  # header row
        if not line.strip():
            continue
        m = _FIRST_COLUMN_RX.match(line)
        if not m:
            continue
        word = m.group(1).strip().lower()
        if " " in word or len(word) <= 2 or not _VOWEL_RX.search(word):
            continue
        words.append(word)
    return words


def parse_basic_words(text: str) -> List[str]:
    return [w.strip() for w in text.splitlines() if w.strip() and _VOWEL_RX.search(w)]


def _sample(seq: Sequence, n: int, rng: random.Random) -> list:
    return rng.sample(list(seq), min(n, len(seq)))


def _word_item(idx: int, word: str, difficulty: float, properties: Dict[str, object]) -> Item:
    return Item(id=f"W{idx}", content=word, kind="word", difficulty=round(difficulty, 4), properties=properties)


def build_primary_words(gre: Sequence[str], basic: Sequence[str], rng: random.Random) -> List[Item]:
    """Common words spread over 3..6 by rank, a GRE sample spread over 6..10."""
    items: List[Item] = []
    common = list(basic)[: config.BASIC_WORD_LIMIT]
    low, high = config.BASIC_BASE_RANGE
    for rank, word in enumerate(common):
        base = interpolate(rank, config.BASIC_WORD_LIMIT, low, high)
        items.append(_word_item(len(items) + 1, word, word_difficulty(word, base), {
            "source": "common",
            "frequency_rank": rank + 1,
            "length": len(word),
        }))

    sampled = _sample(gre, config.GRE_SAMPLE_SIZE, rng)
    low, high = config.GRE_BASE_RANGE
    for rank, word in enumerate(sampled):
        difficulty = word_difficulty(word, interpolate(rank, len(sampled), low, high))
        items.append(_word_item(len(items) + 1, word, difficulty, {
            "source": "GRE",
            "length": len(word),
            "difficulty_level": "advanced" if difficulty > config.GRE_ADVANCED_ABOVE else "intermediate",
        }))
    return items


def build_fallback_words(basic: Sequence[str], rng: random.Random) -> List[Item]:
    """Stratified sample over frequency bands with rank-only difficulty."""
    strata: List[List[Tuple[int, str]]] = [[] for _ in config.FALLBACK_STRATA]
    for rank, word in enumerate(basic):
        for slot, (upper, _n) in enumerate(config.FALLBACK_STRATA):
            if upper is None or rank < upper:
                strata[slot].append((rank, word))
                break

    items: List[Item] = []
    for pool, (_upper, n) in zip(strata, config.FALLBACK_STRATA):
        for rank, word in _sample(pool, n, rng):
            items.append(_word_item(len(items) + 1, word, rank_difficulty(rank), {
                "source": "common",
                "frequency_rank": rank + 1,
                "length": len(word),
            }))
    return items


def load_words(fetch: Optional[Fetcher] = None, rng: Optional[random.Random] = None) -> List[Item]:
    fetch = fetch or http_fetch
    rng = rng or random.Random()
    try:
        gre = parse_gre_words(fetch(config.GRE_WORDS_URL))
        basic = parse_basic_words(fetch(config.BASIC_WORDS_URL))
        log.info("loaded %d GRE words and %d common words", len(gre), len(basic))
        words = build_primary_words(gre, basic, rng)
    except Exception as exc:  # any transport or parse failure
        log.warning("primary vocabulary unavailable (%s); falling back to common words", exc)
        try:
            basic = parse_basic_words(fetch(config.BASIC_WORDS_URL))
            words = build_fallback_words(basic, rng)
        except Exception as fallback_exc:
            log.error("fallback vocabulary unavailable (%s); word list is empty", fallback_exc)
            return []
    rng.shuffle(words)
    return words


def parse_ipa_primary(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) >= 2 and parts[0] and parts[1]:
            out[parts[0].lower()] = parts[1].strip()
    return out


def parse_ipa_backup(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        word = _VARIANT_RX.sub("", parts[0].lower())
        out[word] = "/" + " ".join(parts[1:]) + "/"
    return out


def load_ipa_dictionary(fetch: Optional[Fetcher] = None) -> Dict[str, str]:
    fetch = fetch or http_fetch
    try:
        ipa = parse_ipa_primary(fetch(config.IPA_PRIMARY_URL))
        log.info("loaded %d IPA pronunciations", len(ipa))
        return ipa
    except Exception as exc:
        log.warning("IPA dictionary unavailable (%s); trying backup source", exc)
    try:
        ipa = parse_ipa_backup(fetch(config.IPA_BACKUP_URL))
        log.info("loaded %d IPA pronunciations from backup source", len(ipa))
        return ipa
    except Exception as exc:
        log.error("backup IPA dictionary unavailable (%s)", exc)
        return {}


def attach_ipa(words: Sequence[Item], ipa: Dict[str, str]) -> List[Item]:
    out: List[Item] = []
    for it in words:
        pron = ipa.get(str(it.content).lower())
        if pron and it.ipa is None:
            it = Item(id=it.id, content=it.content, kind=it.kind, difficulty=it.difficulty,
                      target=it.target, ipa=pron, properties=dict(it.properties))
        out.append(it)
    return out
