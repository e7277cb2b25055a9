from .models import Trainer, QuestionState, FlashcardStats
from .interfaces import Storage
from .matching import levenshtein, is_fuzzy_equal, matches, split_answers
from .mastery import MasteryRecord, MasteryStore, HardWordCounter
from .scheduler import SessionKey, DoneSets, build_pool, pick
from .utils import normalize, to_base_form
from .vocabulary import VocabItem, Catalog
from .config import (
    LEVELS, ALL_CATEGORIES, MODES,
    MODE_WRITE, MODE_FLASHCARD, MODE_HARD,
    MIN_BOX, MAX_BOX
)

__all__ = [
    'Trainer', 'QuestionState', 'FlashcardStats',
    'Storage',
    'levenshtein', 'is_fuzzy_equal', 'matches', 'split_answers',
    'MasteryRecord', 'MasteryStore', 'HardWordCounter',
    'SessionKey', 'DoneSets', 'build_pool', 'pick',
    'normalize', 'to_base_form',
    'VocabItem', 'Catalog',
    'LEVELS', 'ALL_CATEGORIES', 'MODES',
    'MODE_WRITE', 'MODE_FLASHCARD', 'MODE_HARD',
    'MIN_BOX', 'MAX_BOX'
]
