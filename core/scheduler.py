"""Session pools and weighted selection of the next term."""

import random

from .config import ALL_CATEGORIES, MODES, MODE_FLASHCARD, MODE_HARD
from .mastery import HardWordCounter, MasteryStore
from .vocabulary import VocabItem


class SessionKey:
    """(language, level, category) scope of the per-mode done-sets."""

    __slots__ = ('language', 'level', 'category')

    def __init__(self, language: str, level: str, category: str = ALL_CATEGORIES):
        self.language = language
        self.level = level
        self.category = category

    def __str__(self) -> str:
        return f"{self.language}_{self.level}_{self.category}"

    def __repr__(self) -> str:
        return f"SessionKey({self.language!r}, {self.level!r}, {self.category!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SessionKey):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))


class DoneSets:
    """Terms already completed, per mode and per session key."""

    def __init__(self):
        self._done = {mode: {} for mode in MODES}

    def mark(self, mode: str, key: SessionKey, term: str) -> None:
        self._done[mode].setdefault(str(key), set()).add(term)

    def is_done(self, mode: str, key: SessionKey, term: str) -> bool:
        return term in self._done[mode].get(str(key), ())

    def terms(self, mode: str, key: SessionKey) -> set[str]:
        return set(self._done[mode].get(str(key), ()))

    def clear(self, mode: str, key: SessionKey) -> None:
        self._done[mode].pop(str(key), None)

    def clear_mode(self, mode: str) -> None:
        self._done[mode] = {}


def weighted_items(items: list[VocabItem], mastery: MasteryStore) -> list[tuple[VocabItem, int]]:
    """Annotate items with their Leitner selection weight."""
    return [(item, mastery.weight(item.term)) for item in items]


def build_pool(items: list[VocabItem], mode: str, key: SessionKey, mastery: MasteryStore,
               done: DoneSets, hard_words: HardWordCounter,
               repeat_terms: set = None) -> list[tuple[VocabItem, int]]:
    """Live candidates for a mode: (item, weight) pairs not yet done.

    items must already be filtered to the session's language, level and
    category. Hard mode keeps only terms with recorded failures; flashcard
    mode can be narrowed to repeat_terms for "retry failed" rounds.
    An empty list means the mode is complete for this session key.
    """
    pool = []
    for item, weight in weighted_items(items, mastery):
        if done.is_done(mode, key, item.term):
            continue
        if mode == MODE_HARD and item.term not in hard_words:
            continue
        if mode == MODE_FLASHCARD and repeat_terms is not None and item.term not in repeat_terms:
            continue
        pool.append((item, weight))
    return pool


def pick(pool: list[tuple[VocabItem, int]], exclude_term: str = None, rng=None) -> VocabItem | None:
    """Roulette-wheel pick proportional to weight.

    The excluded term (usually the one just shown) is skipped unless it is
    the only candidate left.
    """
    rng = rng or random
    candidates = pool
    if exclude_term and len(pool) > 1:
        candidates = [entry for entry in pool if entry[0].term != exclude_term] or pool

    if not candidates:
        return None

    total = sum(weight for _, weight in candidates)
    r = rng.random() * total
    for item, weight in candidates:
        r -= weight
        if r <= 0:
            return item
    return candidates[-1][0]
