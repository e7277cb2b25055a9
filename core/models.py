"""Domain models for vocadrill: question state and the per-user trainer."""

import logging
import random
import time

from . import scheduler
from .config import (
    DEFAULT_LANGUAGE, DEFAULT_LEVEL, ALL_CATEGORIES, LEVELS,
    MODES, MODE_WRITE, MODE_FLASHCARD, MODE_HARD,
    FEEDBACK_OK, FEEDBACK_FIRST_WRONG, FEEDBACK_SECOND_WRONG,
    OUTCOME_IDLE, OUTCOME_CORRECT, OUTCOME_WRONG,
    EFFECT_PERSIST, EFFECT_SCHEDULE_ADVANCE,
    WRITE_ADVANCE_DELAY_MS, FLASHCARD_ADVANCE_DELAY_MS,
    MOTIVATION_EVERY_N_WRONG, MAX_DISTRACTORS, DEFAULT_MOTIVATION_MESSAGES
)
from .mastery import MasteryStore, HardWordCounter
from .matching import matches
from .scheduler import DoneSets, SessionKey
from .vocabulary import Catalog, VocabItem

logger = logging.getLogger(__name__)


class QuestionState:
    """The card currently on screen and how the learner has answered it."""

    def __init__(self, current: VocabItem = None):
        self.current = current
        self.attempt = 0
        self.feedback = None
        self.motivation = None
        # Multiple-choice only
        self.options = []  # [{text, correct}]
        self.selected_index = None
        self.outcome_status = OUTCOME_IDLE

    @property
    def is_terminal(self) -> bool:
        """True once the question was answered correctly or failed twice."""
        return self.feedback in (FEEDBACK_OK, FEEDBACK_SECOND_WRONG)

    @property
    def correct_index(self) -> int | None:
        for i, option in enumerate(self.options):
            if option['correct']:
                return i
        return None


class FlashcardStats:
    """Outcome tally of the current multiple-choice session."""

    def __init__(self, failed_terms: set = None):
        self.correct = 0
        self.wrong = 0
        self.unique_correct_terms = set()
        self.failed_terms = set(failed_terms or ())

    @property
    def answered(self) -> int:
        return self.correct + self.wrong

    @property
    def accuracy(self) -> float:
        if self.answered == 0:
            return 0.0
        return self.correct / self.answered * 100

    def to_dict(self) -> dict:
        return {
            'correct': self.correct,
            'wrong': self.wrong,
            'unique_correct_terms': sorted(self.unique_correct_terms),
            'failed_terms': sorted(self.failed_terms)
        }


class Trainer:
    """Drilling session for one learner.

    Owns the mastery store, hard-word counters, per-mode done-sets and the
    question state machine. Actions return a result dict whose 'effects'
    list tells the host what to do next: persist a snapshot and/or run
    advance(token) after a delay. The trainer itself never sleeps or
    touches storage.
    """

    def __init__(self, catalog: Catalog, language: str = DEFAULT_LANGUAGE, level: str = DEFAULT_LEVEL,
                 category: str = ALL_CATEGORIES, mode: str = MODE_WRITE, motivations: list[str] = None,
                 rng: random.Random = None, clock=time.time):
        self._validate_level(level)
        self._validate_mode(mode)
        self.catalog = catalog
        self.language = language
        self.level = level
        self.category = category
        self.mode = mode
        self.mastery = MasteryStore(clock=clock)
        self.hard_words = HardWordCounter()
        self.done = DoneSets()
        self.streak = 0
        self.answered_count = 0
        self.wrong_count = 0
        self.flash_stats = FlashcardStats()
        self.flash_repeat_terms = None  # Set of terms when retrying failed flashcards only
        self.question = QuestionState()
        self.motivations = [m for m in (motivations or []) if m] or list(DEFAULT_MOTIVATION_MESSAGES)
        self.started = False
        self._rng = rng or random.Random()
        self._clock = clock
        self._advance_seq = 0
        self._pending_advance = None  # {token, term}

    @staticmethod
    def _validate_level(level: str) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown level {level!r}, expected one of {LEVELS}")

    @staticmethod
    def _validate_mode(mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}, expected one of {MODES}")

    # ------------------------------------------------------------------
    # Session scope
    # ------------------------------------------------------------------

    @property
    def session_key(self) -> SessionKey:
        return SessionKey(self.language, self.level, self.category)

    @property
    def current(self) -> VocabItem | None:
        return self.question.current

    def items(self) -> list[VocabItem]:
        """Catalog items for the current language, level and category."""
        return self.catalog.filter(self.language, self.level, self.category)

    def weighted_items(self) -> list[tuple[VocabItem, int]]:
        return scheduler.weighted_items(self.items(), self.mastery)

    def categories(self) -> list[str]:
        return self.catalog.categories(self.language)

    def build_pool(self, mode: str = None, key: SessionKey = None) -> list[tuple[VocabItem, int]]:
        """Remaining (item, weight) candidates for a mode and session key."""
        mode = mode or self.mode
        key = key or self.session_key
        items = self.catalog.filter(key.language, key.level, key.category)
        repeat_terms = self.flash_repeat_terms if mode == MODE_FLASHCARD else None
        return scheduler.build_pool(items, mode, key, self.mastery, self.done,
                                    self.hard_words, repeat_terms)

    def start_session(self, language: str = None, level: str = None, category: str = None,
                      mode: str = None) -> VocabItem | None:
        """Change any part of the session scope and select a new card.

        Switching language resets level and category unless they are given.
        Re-selecting the running scope keeps the current card and stats.
        """
        if level is not None:
            self._validate_level(level)
        if mode is not None:
            self._validate_mode(mode)

        before = (self.language, self.level, self.category, self.mode)
        if language is not None and language != self.language:
            self.language = language
            self.level = DEFAULT_LEVEL
            self.category = ALL_CATEGORIES
        if level is not None:
            self.level = level
        if category is not None:
            self.category = category
        if mode is not None:
            self.mode = mode
        if self.started and before == (self.language, self.level, self.category, self.mode):
            return self.current
        return self._on_session_change()

    def set_language(self, language: str) -> VocabItem | None:
        return self.start_session(language=language)

    def set_level(self, level: str) -> VocabItem | None:
        return self.start_session(level=level)

    def set_category(self, category: str) -> VocabItem | None:
        return self.start_session(category=category)

    def set_mode(self, mode: str) -> VocabItem | None:
        return self.start_session(mode=mode)

    def _on_session_change(self) -> VocabItem | None:
        key = self.session_key
        # Flashcard and hard sessions restart whenever the scope changes;
        # the write session only restarts through reset_write_session().
        if self.mode == MODE_FLASHCARD:
            self.flash_stats = FlashcardStats()
            self.flash_repeat_terms = None
            self.done.clear(MODE_FLASHCARD, key)
        elif self.mode == MODE_HARD:
            self.done.clear(MODE_HARD, key)

        if len(self.items()) == 1:
            logger.warning(f"Only one word matches {key}; cards cannot rotate")

        self.started = True
        return self.next_card()

    def reset_write_session(self) -> VocabItem | None:
        """Forget which words were completed in write mode for this session key."""
        self.done.clear(MODE_WRITE, self.session_key)
        if self.mode == MODE_WRITE:
            return self.next_card()
        return self.current

    # ------------------------------------------------------------------
    # Card selection
    # ------------------------------------------------------------------

    def next_card(self, mode: str = None) -> VocabItem | None:
        """Pick the next card. Returns None when the mode is complete."""
        effective_mode = mode or self.mode
        pool = self.build_pool(effective_mode)
        exclude = self.current.term if self.current else None
        item = scheduler.pick(pool, exclude, self._rng)

        self._pending_advance = None
        self.question = QuestionState(item)
        if item is None:
            logger.info(f"Mode {effective_mode} complete for {self.session_key}")
            return None
        if effective_mode == MODE_FLASHCARD:
            self.question.options = self.prepare_choices(item)
        return item

    def prepare_choices(self, target: VocabItem) -> list[dict]:
        """One correct option plus up to MAX_DISTRACTORS other translations, shuffled."""
        if target is None:
            return []
        others = [item for item in self.items() if item.term != target.term]
        self._rng.shuffle(others)
        options = [{'text': target.translation, 'correct': True}]
        options.extend({'text': item.translation, 'correct': False} for item in others[:MAX_DISTRACTORS])
        self._rng.shuffle(options)
        return options

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------

    def check(self, answer: str) -> dict:
        """Grade a written answer (write and hard modes).

        First miss reveals the definition; second miss is terminal and
        waits for reveal_and_next(). A correct answer schedules an advance.
        """
        q = self.question
        if q.current is None or q.is_terminal or self.mode == MODE_FLASHCARD:
            return self._outcome(None, [])

        term = q.current.term
        if matches(answer, q.current.translation):
            q.feedback = FEEDBACK_OK
            self.mastery.grade(term, True)
            self.streak += 1
            self.answered_count += 1
            if self.mode in (MODE_WRITE, MODE_HARD):
                self.done.mark(self.mode, self.session_key, term)
            effects = [{'type': EFFECT_PERSIST}, self._schedule_advance(WRITE_ADVANCE_DELAY_MS)]
            return self._outcome(True, effects)

        self.wrong_count += 1
        if self.wrong_count % MOTIVATION_EVERY_N_WRONG == 0:
            q.motivation = self._rng.choice(self.motivations)
        else:
            q.motivation = None

        if q.attempt == 0:
            q.attempt = 1
            q.feedback = FEEDBACK_FIRST_WRONG
        else:
            q.feedback = FEEDBACK_SECOND_WRONG
            self.streak = 0
            self.mastery.grade(term, False)
            self.hard_words.increment(term)
        return self._outcome(False, [{'type': EFFECT_PERSIST}])

    def reveal_and_next(self) -> dict:
        """Leave the current card (usually after a terminal failure) and move on."""
        revealed = self.current
        self.next_card()
        return {
            'revealed': revealed.to_dict() if revealed else None,
            'effects': []
        }

    def grade_choice(self, was_correct: bool, chosen_index: int = None) -> dict:
        """Grade a multiple-choice answer. Single shot, always auto-advances.

        Flashcards are ungraded practice: they feed the flashcard done-set,
        session stats and hard-word counters, never the Leitner boxes,
        streak or answered count.
        """
        q = self.question
        if q.current is None or q.outcome_status != OUTCOME_IDLE:
            return self._outcome(None, [])

        term = q.current.term
        q.selected_index = chosen_index
        effects = []
        if was_correct:
            q.outcome_status = OUTCOME_CORRECT
            self.done.mark(MODE_FLASHCARD, self.session_key, term)
            self.flash_stats.correct += 1
            self.flash_stats.unique_correct_terms.add(term)
        else:
            q.outcome_status = OUTCOME_WRONG
            self.hard_words.increment(term)
            self.flash_stats.wrong += 1
            self.flash_stats.failed_terms.add(term)
            effects.append({'type': EFFECT_PERSIST})
        effects.append(self._schedule_advance(FLASHCARD_ADVANCE_DELAY_MS))
        return self._outcome(was_correct, effects)

    def choose(self, index: int) -> dict:
        """Grade the option at index of the current card."""
        if not 0 <= index < len(self.question.options):
            raise IndexError(f"Option {index} out of range (0-{len(self.question.options) - 1})")
        return self.grade_choice(self.question.options[index]['correct'], index)

    def _outcome(self, correct: bool | None, effects: list[dict]) -> dict:
        q = self.question
        return {
            'correct': correct,
            'feedback': q.feedback,
            'attempt': q.attempt,
            'outcome_status': q.outcome_status,
            'motivation': q.motivation,
            'effects': effects
        }

    # ------------------------------------------------------------------
    # Scheduled advance
    # ------------------------------------------------------------------

    def _schedule_advance(self, delay_ms: int) -> dict:
        self._advance_seq += 1
        self._pending_advance = {'token': self._advance_seq, 'term': self.current.term}
        return {'type': EFFECT_SCHEDULE_ADVANCE, 'delay_ms': delay_ms, 'token': self._advance_seq}

    @property
    def pending_advance(self) -> dict | None:
        return dict(self._pending_advance) if self._pending_advance else None

    def advance(self, token: int) -> bool:
        """Run a scheduled advance. Stale or cancelled tokens are ignored."""
        pending = self._pending_advance
        if not pending or pending['token'] != token:
            return False
        if self.current is None or self.current.term != pending['term']:
            self._pending_advance = None
            return False
        self.next_card()
        return True

    def cancel_advance(self) -> None:
        self._pending_advance = None

    # ------------------------------------------------------------------
    # Flashcard retry rounds
    # ------------------------------------------------------------------

    def repeat_all_flashcards(self) -> VocabItem | None:
        """Start the flashcard session over with every word."""
        self.flash_stats = FlashcardStats()
        self.flash_repeat_terms = None
        self.done.clear(MODE_FLASHCARD, self.session_key)
        return self.next_card()

    def repeat_failed_flashcards(self) -> VocabItem | None:
        """Start a flashcard round restricted to the words missed so far."""
        failed = set(self.flash_stats.failed_terms)
        if not failed:
            return self.repeat_all_flashcards()
        self.flash_repeat_terms = failed
        self.flash_stats = FlashcardStats(failed_terms=failed)
        self.done.clear(MODE_FLASHCARD, self.session_key)
        return self.next_card()

    # ------------------------------------------------------------------
    # Derived statistics
    # ------------------------------------------------------------------

    def _level_counts(self, level: str) -> tuple[int, int]:
        words = self.catalog.level_items(self.language, level)
        mastered = sum(1 for item in words if self.mastery.is_mastered(item.term))
        return len(words), mastered

    @property
    def total_level_words(self) -> int:
        return self._level_counts(self.level)[0]

    @property
    def mastered_count(self) -> int:
        return self._level_counts(self.level)[1]

    @property
    def level_progress(self) -> float:
        total, mastered = self._level_counts(self.level)
        return mastered / total * 100 if total > 0 else 0.0

    def level_stats(self) -> list[dict]:
        """Mastered/total per level for the current language."""
        stats = []
        for level in LEVELS:
            total, mastered = self._level_counts(level)
            pct = int(mastered / total * 100 + 0.5) if total > 0 else 0
            stats.append({'level': level, 'total': total, 'mastered': mastered, 'pct': pct})
        return stats

    def flashcard_summary(self) -> dict:
        total = len(self.items())
        unique_correct = len(self.flash_stats.unique_correct_terms)
        return {
            'total': total,
            'unique_correct': unique_correct,
            'remaining': max(total - unique_correct, 0),
            'answered': self.flash_stats.answered,
            'accuracy': self.flash_stats.accuracy,
            **self.flash_stats.to_dict()
        }

    def question_view(self) -> dict:
        """What a client may show for the current card.

        The translation is only included once the card is settled, and the
        definition only after the first miss.
        """
        q = self.question
        item = q.current
        settled = q.is_terminal or q.outcome_status != OUTCOME_IDLE
        return {
            'complete': item is None,
            'mode': self.mode,
            'language': self.language,
            'level': self.level,
            'category': self.category,
            'session_key': str(self.session_key),
            'term': item.term if item else None,
            'definition': item.definition if item and q.attempt >= 1 else None,
            'translation': item.translation if item and settled else None,
            'attempt': q.attempt,
            'feedback': q.feedback,
            'motivation': q.motivation,
            'options': [option['text'] for option in q.options],
            'selected_index': q.selected_index,
            'outcome_status': q.outcome_status,
            'correct_index': q.correct_index if q.outcome_status != OUTCOME_IDLE else None,
            'remaining': len(self.build_pool()),
            'streak': self.streak,
            'answered_count': self.answered_count,
            'wrong_count': self.wrong_count
        }

    def status(self) -> dict:
        return {
            'language': self.language,
            'level': self.level,
            'category': self.category,
            'mode': self.mode,
            'streak': self.streak,
            'answered_count': self.answered_count,
            'wrong_count': self.wrong_count,
            'hard_words_count': len(self.hard_words),
            'mastered_count': self.mastered_count,
            'total_level_words': self.total_level_words,
            'level_progress': self.level_progress,
            'level_stats': self.level_stats(),
            'flashcard': self.flashcard_summary()
        }

    # ------------------------------------------------------------------
    # Persistence snapshot
    # ------------------------------------------------------------------

    _COUNTER_FIELDS = ['answered_count', 'wrong_count', 'streak']

    def to_dict(self, include_counters: bool = True) -> dict:
        """Snapshot for storage. Guests keep progress and hard words only."""
        state = {
            'progress': self.mastery.to_dict(),
            'hard_words': self.hard_words.to_dict(),
            'updated_at': self._clock()
        }
        if include_counters:
            for field in self._COUNTER_FIELDS:
                state[field] = getattr(self, field)
        return state

    def load_state(self, data: dict) -> None:
        """Apply a stored snapshot. Missing or malformed fields are left alone."""
        if not data:
            return
        if isinstance(data.get('progress'), dict):
            self.mastery = MasteryStore.from_dict(data['progress'], clock=self._clock)
        if isinstance(data.get('hard_words'), dict):
            self.hard_words = HardWordCounter.from_dict(data['hard_words'])
        for field in self._COUNTER_FIELDS:
            value = data.get(field)
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                setattr(self, field, value)

    @classmethod
    def from_dict(cls, data: dict, catalog: Catalog, **kwargs) -> 'Trainer':
        trainer = cls(catalog, **kwargs)
        trainer.load_state(data)
        return trainer
