"""
Adaptive item selection for the oral reading recognition (ORR) test.

Components:
- item bank (letters, letter arrays, words) with external word sources
- ability / standard-error heuristics
- next-item selector and stopping rule
- CATSession state machine with practice, pause/resume and undo
"""

from .types import Item, Response, Participant, SessionSummary
from .config import CATConfig, load_config, make_rng
from .item_bank import BankLoadError, ItemBank, load_bank, get_bank, practice_items
from .estimator import starting_ability, update_ability, standard_error
from .selector import select_next
from .stopping import should_stop
from .engine import CATSession, Command

__all__ = [
    "Item",
    "Response",
    "Participant",
    "SessionSummary",
    "CATConfig",
    "load_config",
    "make_rng",
    "BankLoadError",
    "ItemBank",
    "load_bank",
    "get_bank",
    "practice_items",
    "starting_ability",
    "update_ability",
    "standard_error",
    "select_next",
    "should_stop",
    "CATSession",
    "Command",
]
