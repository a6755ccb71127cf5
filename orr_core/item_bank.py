from __future__ import annotations
import json, logging, random, importlib.resources as ir
from typing import Dict, Iterable, Iterator, List, Optional

from . import config
from .types import Item, ITEM_KINDS
from .vocabulary import Fetcher, attach_ipa, load_ipa_dictionary, load_words

log = logging.getLogger(__name__)


class BankLoadError(RuntimeError):
    """The item bank could not be built; a session must not start without one."""


class ItemBank:
    """Immutable, id-keyed collection of scored items for one test run."""

    def __init__(self, items: Iterable[Item]):
        by_id: Dict[str, Item] = {}
        for it in items:
            if it.id in by_id:
                raise ValueError(f"duplicate item id {it.id!r}")
            by_id[it.id] = it
        self._by_id = by_id
        self._all = frozenset(by_id.values())

    def all_items(self) -> frozenset[Item]:
        return self._all

    def get(self, item_id: str) -> Optional[Item]:
        return self._by_id.get(item_id)

    def ids(self) -> frozenset[str]:
        return frozenset(self._by_id)

    def by_kind(self, kind: str) -> List[Item]:
        return [it for it in self._by_id.values() if it.kind == kind]

    def counts(self) -> Dict[str, int]:
        return {kind: len(self.by_kind(kind)) for kind in ITEM_KINDS}

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def __iter__(self) -> Iterator[Item]:
        return iter(self._by_id.values())


def _local_data() -> dict:
    try:
        data = ir.files(__package__).joinpath("data").joinpath("bank.json").read_text(encoding="utf-8")
        return json.loads(data)
    except (OSError, ValueError) as exc:
        raise BankLoadError(f"local item data unreadable: {exc}") from exc


def load_letters() -> List[Item]:
    return [Item.from_dict(r) for r in _local_data()["letters"]]


def load_letter_arrays() -> List[Item]:
    return [Item.from_dict(r) for r in _local_data()["letter_arrays"]]


def practice_items() -> List[Item]:
    return [Item.from_dict(r) for r in _local_data()["practice"]]


def load_bank(
    fetch: Optional[Fetcher] = None,
    include_words: bool = True,
    attach_phonetics: Optional[bool] = None,
    rng: Optional[random.Random] = None,
) -> ItemBank:
    """Merge letter arrays, letters and externally sourced words into a bank."""
    log.info("loading item bank (words=%s)", include_words)
    items: List[Item] = load_letter_arrays() + load_letters()
    if include_words:
        words = load_words(fetch, rng)
        if attach_phonetics if attach_phonetics is not None else config.FETCH_IPA:
            words = attach_ipa(words, load_ipa_dictionary(fetch))
        items.extend(words)
    if not items:
        raise BankLoadError("item bank is empty")
    bank = ItemBank(items)
    log.info("loaded %d items total %s", len(bank), bank.counts())
    return bank


_BANK_CACHE: Optional[ItemBank] = None


def get_bank(fetch: Optional[Fetcher] = None) -> ItemBank:
    """Return the process-wide preloaded bank, loading it on first use."""

    global _BANK_CACHE
    if _BANK_CACHE is None:
        _BANK_CACHE = load_bank(fetch)
    return _BANK_CACHE


def clear_bank_cache() -> None:
    global _BANK_CACHE
    _BANK_CACHE = None
