"""Unit tests for vocadrill core module."""

import random
import unittest

from core.models import Trainer, QuestionState
from core.interfaces import Storage
from core.matching import levenshtein, allowed_errors, is_fuzzy_equal, split_answers, matches
from core.mastery import MasteryRecord, MasteryStore, HardWordCounter
from core.scheduler import SessionKey, DoneSets, build_pool, pick
from core.utils import normalize, to_base_form
from core.vocabulary import VocabItem, Catalog, get_seed_data
from core.config import (
    ALL_CATEGORIES, MODE_WRITE, MODE_FLASHCARD, MODE_HARD,
    MIN_BOX, MAX_BOX, FEEDBACK_OK, FEEDBACK_FIRST_WRONG, FEEDBACK_SECOND_WRONG,
    OUTCOME_IDLE, OUTCOME_CORRECT, OUTCOME_WRONG,
    EFFECT_PERSIST, EFFECT_SCHEDULE_ADVANCE,
    WRITE_ADVANCE_DELAY_MS, FLASHCARD_ADVANCE_DELAY_MS, DEFAULT_MOTIVATION_MESSAGES
)


# ============================================================================
# Mock Implementations
# ============================================================================

class MockStorage(Storage):
    """Mock storage for testing."""

    def __init__(self):
        self.config = {}
        self.states = {}
        self.save_calls = []
        self.vocab = []

    def set_config(self, config: dict):
        self.config = config

    def load_config(self) -> dict:
        return self.config

    def load_state(self, user_id: str = "default") -> dict | None:
        return self.states.get(user_id)

    def save_state(self, state: dict, user_id: str = "default") -> None:
        self.save_calls.append(dict(state))
        merged = dict(self.states.get(user_id) or {})
        merged.update(state)
        self.states[user_id] = merged

    def list_users(self) -> list[str]:
        return sorted(self.states)

    def user_exists(self, user_id: str) -> bool:
        return user_id in self.states

    def seed_vocabulary(self, items: list[dict]) -> None:
        self.vocab.extend(items)

    def get_vocab_items(self, language: str = None) -> list[dict]:
        return [i for i in self.vocab if language is None or i['language'] == language]

    def get_languages(self) -> list[str]:
        return sorted({i['language'] for i in self.vocab})


def make_catalog(*pairs, language='en', level='A1', category='animals'):
    """Catalog of (term, translation) pairs in a single partition."""
    return Catalog([
        VocabItem(term, translation, f"definition of {term}", level, category, language)
        for term, translation in pairs
    ])


def make_trainer(catalog, mode=MODE_WRITE, category='animals', **kwargs):
    trainer = Trainer(catalog, 'en', 'A1', category, mode,
                      rng=random.Random(7), clock=lambda: 1000.0, **kwargs)
    trainer.start_session()
    return trainer


def first_answer(trainer):
    return split_answers(trainer.current.translation)[0]


def advance_token(result):
    for effect in result['effects']:
        if effect['type'] == EFFECT_SCHEDULE_ADVANCE:
            return effect['token']
    return None


def wrong_index(trainer):
    return next(i for i, option in enumerate(trainer.question.options) if not option['correct'])


# ============================================================================
# Test Cases
# ============================================================================

class TestNormalize(unittest.TestCase):
    """Tests for text normalization."""

    def test_lowercase_and_diacritics(self):
        self.assertEqual(normalize("  Árbol \t Grande "), "arbol grande")
        self.assertEqual(normalize("Canción"), "cancion")
        self.assertEqual(normalize("pingüino"), "pinguino")

    def test_idempotent(self):
        samples = ["Él está AQUÍ", "  niño  ", "Straße", "", "über\nalles"]
        for sample in samples:
            once = normalize(sample)
            self.assertEqual(normalize(once), once)

    def test_none_is_empty(self):
        self.assertEqual(normalize(None), "")
        self.assertEqual(to_base_form(None), "")

    def test_whitespace_only(self):
        self.assertEqual(to_base_form("   "), "")

    def test_strips_articles(self):
        self.assertEqual(to_base_form("El Pájaro"), "pajaro")
        self.assertEqual(to_base_form("the dog"), "dog")
        self.assertEqual(to_base_form("una casa"), "casa")

    def test_singularizes_last_word_only(self):
        self.assertEqual(to_base_form("Los gatos"), "gato")
        self.assertEqual(to_base_form("las flores"), "flor")
        self.assertEqual(to_base_form("gatos negros"), "gatos negro")

    def test_crude_singular_rule(self):
        # Reproduces the simple suffix rule, wrong results included
        self.assertEqual(to_base_form("tres"), "tr")
        self.assertEqual(to_base_form("mes"), "me")
        self.assertEqual(to_base_form("es"), "es")


class TestMatching(unittest.TestCase):
    """Tests for the fuzzy answer matcher."""

    def test_levenshtein(self):
        self.assertEqual(levenshtein("kitten", "sitting"), 3)
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("abc", ""), 3)
        self.assertEqual(levenshtein("abc", "abc"), 0)

    def test_allowed_errors(self):
        self.assertEqual(allowed_errors(1), 1)
        self.assertEqual(allowed_errors(4), 1)
        self.assertEqual(allowed_errors(5), 2)
        self.assertEqual(allowed_errors(12), 2)

    def test_reflexive(self):
        for word in ["perro", "el gato", "bicicleta", "casa grande"]:
            self.assertTrue(matches(word, word))

    def test_tolerance_boundary_short_word(self):
        self.assertTrue(matches("gatp", "gato"))
        self.assertFalse(matches("gaxx", "gato"))

    def test_tolerance_long_word(self):
        self.assertTrue(matches("bicicelta", "bicicleta"))
        self.assertFalse(matches("bixixelta", "bicicleta"))

    def test_short_words_need_close_spelling(self):
        self.assertFalse(matches("no", "si"))

    def test_accents_and_articles_ignored(self):
        self.assertTrue(matches("el pajaro", "pájaro;ave"))
        self.assertTrue(matches("AVIÓN", "avion"))

    def test_multi_answer_gold(self):
        gold = "carro;coche|auto"
        self.assertTrue(matches("coche", gold))
        self.assertTrue(matches("auto", gold))
        self.assertTrue(matches("carro", gold))
        self.assertFalse(matches("moto", gold))
        self.assertTrue(matches("bici", "bicicleta/bici"))

    def test_split_answers(self):
        self.assertEqual(split_answers("carro; coche |auto"), ["carro", "coche", "auto"])
        self.assertEqual(split_answers("a;;b/"), ["a", "b"])
        self.assertEqual(split_answers(""), [])

    def test_empty_gold_never_matches(self):
        self.assertFalse(matches("perro", ""))
        self.assertFalse(matches("perro", None))
        self.assertFalse(matches("perro", " ; | "))

    def test_empty_answer_never_matches(self):
        self.assertFalse(is_fuzzy_equal("", "perro"))
        self.assertFalse(matches("   ", "perro"))


class TestMasteryStore(unittest.TestCase):
    """Tests for Leitner boxes."""

    def test_unseen_term(self):
        store = MasteryStore()
        record = store.get("dog")
        self.assertEqual(record.box, MIN_BOX)
        self.assertEqual(record.seen, 0)
        self.assertNotIn("dog", store)

    def test_box_upper_bound(self):
        store = MasteryStore(clock=lambda: 42.0)
        for _ in range(7):
            store.grade("dog", True)
        record = store.get("dog")
        self.assertEqual(record.box, MAX_BOX)
        self.assertEqual(record.seen, 7)
        self.assertEqual(record.last_updated, 42.0)

    def test_box_lower_bound(self):
        store = MasteryStore()
        store.grade("dog", True)
        for _ in range(5):
            store.grade("dog", False)
        self.assertEqual(store.box("dog"), MIN_BOX)
        self.assertEqual(store.get("dog").seen, 6)

    def test_weights(self):
        weights = [MasteryStore({'w': MasteryRecord(box=box)}).weight('w') for box in range(5)]
        self.assertEqual(weights, [5, 4, 3, 2, 1])
        self.assertEqual(MasteryStore().weight('unseen'), 5)

    def test_is_mastered(self):
        store = MasteryStore()
        self.assertFalse(store.is_mastered("dog"))
        store.grade("dog", True)
        self.assertTrue(store.is_mastered("dog"))

    def test_from_dict_clamps_and_skips_malformed(self):
        store = MasteryStore.from_dict({
            'dog': {'box': 9, 'seen': 3},
            'cat': {'box': -2},
            'bird': 'not a record',
            '': {'box': 1}
        })
        self.assertEqual(store.box('dog'), MAX_BOX)
        self.assertEqual(store.box('cat'), MIN_BOX)
        self.assertNotIn('bird', store)
        self.assertEqual(len(store), 2)

    def test_round_trip(self):
        store = MasteryStore(clock=lambda: 5.0)
        store.grade("dog", True)
        store.grade("dog", True)
        restored = MasteryStore.from_dict(store.to_dict())
        self.assertEqual(restored.get("dog").to_dict(), {'box': 2, 'seen': 2, 'last_updated': 5.0})


class TestHardWordCounter(unittest.TestCase):

    def test_increment(self):
        counter = HardWordCounter()
        self.assertEqual(counter.increment("dog"), 1)
        self.assertEqual(counter.increment("dog"), 2)
        self.assertIn("dog", counter)
        self.assertNotIn("cat", counter)
        self.assertEqual(counter.terms(), {"dog"})

    def test_from_dict_drops_invalid(self):
        counter = HardWordCounter.from_dict({'a': 2, 'b': 0, 'c': 'x', 'd': True})
        self.assertEqual(counter.terms(), {'a'})
        self.assertEqual(counter.count('a'), 2)


class TestCatalog(unittest.TestCase):
    """Tests for catalog loading and filtering."""

    def test_from_entries_rejects_malformed(self):
        catalog = Catalog.from_entries([
            {'term': 'x'},
            {'translation': 'y'},
            'bad',
            {'term': 'a', 'translation': 'b'}
        ], language='en', level='A1')
        self.assertEqual(len(catalog), 1)
        item = catalog.items[0]
        self.assertEqual(item.category, 'general')
        self.assertEqual(item.level, 'A1')

    def test_seed_categories(self):
        catalog = Catalog.seed()
        self.assertEqual(catalog.categories('en'), [ALL_CATEGORIES, 'animals', 'home', 'transport'])
        self.assertEqual(catalog.languages(), ['de', 'en'])

    def test_filter(self):
        catalog = Catalog.seed()
        animals = catalog.filter('en', 'A1', 'animals')
        self.assertEqual({i.term for i in animals}, {'dog', 'cat', 'bird', 'horse', 'fish'})
        self.assertEqual(len(catalog.filter('en', 'A1', ALL_CATEGORIES)), 12)
        self.assertEqual(catalog.filter('en', 'C1', ALL_CATEGORIES), [])
        self.assertEqual(catalog.filter('fr', 'A1'), [])

    def test_from_storage(self):
        storage = MockStorage()
        storage.seed_vocabulary(get_seed_data('de'))
        catalog = Catalog.from_storage(storage)
        self.assertEqual(catalog.languages(), ['de'])
        self.assertEqual(len(catalog), 6)


class TestScheduler(unittest.TestCase):
    """Tests for pool building and weighted selection."""

    def setUp(self):
        self.a = VocabItem('A', 'aa', level='A1', category='x')
        self.b = VocabItem('B', 'bb', level='A1', category='x')
        self.c = VocabItem('C', 'cc', level='A1', category='x')
        self.key = SessionKey('en', 'A1', 'x')

    def test_session_key_string(self):
        self.assertEqual(str(SessionKey('en', 'A1', 'animals')), 'en_A1_animals')
        self.assertEqual(SessionKey('en', 'A1', 'x'), self.key)

    def test_done_sets_are_per_mode_and_key(self):
        done = DoneSets()
        done.mark(MODE_WRITE, self.key, 'A')
        self.assertTrue(done.is_done(MODE_WRITE, self.key, 'A'))
        self.assertFalse(done.is_done(MODE_FLASHCARD, self.key, 'A'))
        self.assertFalse(done.is_done(MODE_WRITE, SessionKey('en', 'A2', 'x'), 'A'))
        done.clear(MODE_WRITE, self.key)
        self.assertEqual(done.terms(MODE_WRITE, self.key), set())

    def test_build_pool_excludes_done(self):
        done = DoneSets()
        done.mark(MODE_WRITE, self.key, 'B')
        pool = build_pool([self.a, self.b, self.c], MODE_WRITE, self.key,
                          MasteryStore(), done, HardWordCounter())
        self.assertEqual([item.term for item, _ in pool], ['A', 'C'])
        self.assertEqual([weight for _, weight in pool], [5, 5])

    def test_build_pool_hard_mode(self):
        hard = HardWordCounter({'C': 1})
        pool = build_pool([self.a, self.b, self.c], MODE_HARD, self.key,
                          MasteryStore(), DoneSets(), hard)
        self.assertEqual([item.term for item, _ in pool], ['C'])

    def test_build_pool_repeat_terms(self):
        pool = build_pool([self.a, self.b, self.c], MODE_FLASHCARD, self.key,
                          MasteryStore(), DoneSets(), HardWordCounter(), repeat_terms={'B'})
        self.assertEqual([item.term for item, _ in pool], ['B'])

    def test_pick_empty(self):
        self.assertIsNone(pick([]))

    def test_pick_excludes_current(self):
        rng = random.Random(3)
        pool = [(self.a, 5), (self.b, 1)]
        for _ in range(50):
            self.assertEqual(pick(pool, 'A', rng), self.b)

    def test_pick_single_entry_ignores_exclusion(self):
        self.assertEqual(pick([(self.a, 1)], 'A'), self.a)

    def test_weighted_distribution(self):
        rng = random.Random(1234)
        pool = [(self.a, 4), (self.b, 1)]
        draws = 10000
        hits = sum(1 for _ in range(draws) if pick(pool, None, rng) is self.a)
        self.assertGreater(hits / draws, 0.77)
        self.assertLess(hits / draws, 0.83)


class TestTrainerWrite(unittest.TestCase):
    """Tests for the two-attempt written answer flow."""

    def setUp(self):
        self.catalog = make_catalog(('dog', 'perro'), ('cat', 'gato'), ('horse', 'caballo'))

    def test_invalid_mode_and_level(self):
        with self.assertRaises(ValueError):
            Trainer(self.catalog, mode='speed')
        trainer = make_trainer(self.catalog)
        with self.assertRaises(ValueError):
            trainer.set_level('Z9')
        with self.assertRaises(ValueError):
            trainer.set_mode('speed')

    def test_start_selects_card(self):
        trainer = make_trainer(self.catalog)
        self.assertTrue(trainer.started)
        self.assertIn(trainer.current.term, {'dog', 'cat', 'horse'})
        view = trainer.question_view()
        self.assertFalse(view['complete'])
        self.assertIsNone(view['translation'])
        self.assertIsNone(view['definition'])
        self.assertEqual(view['session_key'], 'en_A1_animals')

    def test_correct_answer(self):
        trainer = make_trainer(self.catalog)
        term = trainer.current.term
        result = trainer.check(first_answer(trainer))

        self.assertTrue(result['correct'])
        self.assertEqual(result['feedback'], FEEDBACK_OK)
        self.assertEqual(trainer.streak, 1)
        self.assertEqual(trainer.answered_count, 1)
        self.assertEqual(trainer.mastery.box(term), 1)
        self.assertTrue(trainer.done.is_done(MODE_WRITE, trainer.session_key, term))

        types = [effect['type'] for effect in result['effects']]
        self.assertEqual(types, [EFFECT_PERSIST, EFFECT_SCHEDULE_ADVANCE])
        self.assertEqual(result['effects'][1]['delay_ms'], WRITE_ADVANCE_DELAY_MS)
        self.assertEqual(trainer.question_view()['translation'], trainer.current.translation)

    def test_two_attempt_flow(self):
        trainer = make_trainer(self.catalog)
        term = trainer.current.term

        first = trainer.check("zzzzzz")
        self.assertFalse(first['correct'])
        self.assertEqual(first['feedback'], FEEDBACK_FIRST_WRONG)
        self.assertEqual(first['attempt'], 1)
        self.assertEqual(trainer.hard_words.count(term), 0)
        self.assertEqual(trainer.question_view()['definition'], f"definition of {term}")
        self.assertIsNone(trainer.question_view()['translation'])

        second = trainer.check("zzzzzz")
        self.assertFalse(second['correct'])
        self.assertEqual(second['feedback'], FEEDBACK_SECOND_WRONG)
        self.assertEqual(trainer.hard_words.count(term), 1)
        self.assertEqual(trainer.streak, 0)
        self.assertEqual(trainer.mastery.box(term), MIN_BOX)
        self.assertEqual(trainer.mastery.get(term).seen, 1)
        self.assertEqual([e['type'] for e in second['effects']], [EFFECT_PERSIST])
        self.assertIsNone(trainer.pending_advance)

        # Terminal: further input is ignored
        ignored = trainer.check("zzzzzz")
        self.assertIsNone(ignored['correct'])
        self.assertEqual(trainer.hard_words.count(term), 1)
        self.assertEqual(trainer.wrong_count, 2)

    def test_second_attempt_success(self):
        trainer = make_trainer(self.catalog)
        trainer.check("zzzzzz")
        result = trainer.check(first_answer(trainer))
        self.assertTrue(result['correct'])
        self.assertEqual(trainer.hard_words.count(trainer.current.term), 0)
        self.assertEqual(trainer.streak, 1)

    def test_wrong_resets_streak(self):
        trainer = make_trainer(self.catalog)
        trainer.check(first_answer(trainer))
        trainer.advance(trainer.pending_advance['token'])
        self.assertEqual(trainer.streak, 1)
        trainer.check("zzzzzz")
        trainer.check("zzzzzz")
        self.assertEqual(trainer.streak, 0)

    def test_reveal_and_next(self):
        trainer = make_trainer(self.catalog)
        term = trainer.current.term
        trainer.check("zzzzzz")
        trainer.check("zzzzzz")
        result = trainer.reveal_and_next()
        self.assertEqual(result['revealed']['term'], term)
        self.assertNotEqual(trainer.current.term, term)
        self.assertEqual(trainer.question.attempt, 0)
        self.assertIsNone(trainer.question.feedback)

    def test_pool_exhaustion(self):
        trainer = make_trainer(self.catalog)
        seen = []
        for _ in range(3):
            seen.append(trainer.current.term)
            result = trainer.check(first_answer(trainer))
            self.assertTrue(trainer.advance(advance_token(result)))
        self.assertEqual(sorted(seen), ['cat', 'dog', 'horse'])
        self.assertIsNone(trainer.current)
        self.assertTrue(trainer.question_view()['complete'])
        self.assertEqual(trainer.build_pool(), [])

    def test_reset_write_session(self):
        trainer = make_trainer(self.catalog)
        for _ in range(3):
            result = trainer.check(first_answer(trainer))
            trainer.advance(advance_token(result))
        self.assertIsNone(trainer.current)
        trainer.reset_write_session()
        self.assertEqual(len(trainer.build_pool()), 3)
        self.assertIsNotNone(trainer.current)

    def test_write_done_set_survives_mode_switch(self):
        trainer = make_trainer(self.catalog)
        term = trainer.current.term
        trainer.check(first_answer(trainer))
        trainer.set_mode(MODE_FLASHCARD)
        trainer.set_mode(MODE_WRITE)
        self.assertNotIn(term, [item.term for item, _ in trainer.build_pool()])

    def test_motivation_every_fifth_miss(self):
        trainer = make_trainer(self.catalog, motivations=['keep going'])
        motivations = []
        for _ in range(2):
            motivations.append(trainer.check("zzzzzz")['motivation'])
            motivations.append(trainer.check("zzzzzz")['motivation'])
            trainer.reveal_and_next()
        motivations.append(trainer.check("zzzzzz")['motivation'])
        self.assertEqual(trainer.wrong_count, 5)
        self.assertEqual(motivations, [None, None, None, None, 'keep going'])

    def test_default_motivations(self):
        trainer = make_trainer(self.catalog, motivations=[])
        self.assertEqual(trainer.motivations, DEFAULT_MOTIVATION_MESSAGES)
        self.assertEqual(len(trainer.motivations), 7)

    def test_hard_mode_pool(self):
        trainer = make_trainer(self.catalog)
        failed = trainer.current.term
        trainer.check("zzzzzz")
        trainer.check("zzzzzz")
        trainer.set_mode(MODE_HARD)
        self.assertEqual([item.term for item, _ in trainer.build_pool()], [failed])
        self.assertEqual(trainer.current.term, failed)

        result = trainer.check(first_answer(trainer))
        self.assertTrue(result['correct'])
        trainer.advance(advance_token(result))
        self.assertIsNone(trainer.current)

    def test_hard_mode_empty_without_failures(self):
        trainer = make_trainer(self.catalog, mode=MODE_HARD)
        self.assertIsNone(trainer.current)


class TestTrainerEndToEnd(unittest.TestCase):

    def test_single_word_session(self):
        catalog = Catalog.from_entries([
            {'term': 'dog', 'translation': 'perro', 'level': 'A1', 'category': 'animals'}
        ], language='en')
        trainer = make_trainer(catalog)
        self.assertEqual(trainer.current.term, 'dog')

        result = trainer.check("perro")
        self.assertEqual(result['feedback'], FEEDBACK_OK)
        self.assertEqual(trainer.streak, 1)
        self.assertEqual(trainer.answered_count, 1)
        self.assertEqual(trainer.mastery.box('dog'), 1)
        self.assertEqual(trainer.build_pool(), [])

        self.assertTrue(trainer.advance(advance_token(result)))
        self.assertIsNone(trainer.current)


class TestScheduledAdvance(unittest.TestCase):
    """Tests for stale advance protection."""

    def setUp(self):
        self.catalog = make_catalog(('dog', 'perro'), ('cat', 'gato'), ('horse', 'caballo'))

    def test_wrong_token_ignored(self):
        trainer = make_trainer(self.catalog)
        term = trainer.current.term
        token = advance_token(trainer.check(first_answer(trainer)))
        self.assertFalse(trainer.advance(token + 1))
        self.assertEqual(trainer.current.term, term)
        self.assertTrue(trainer.advance(token))
        self.assertFalse(trainer.advance(token))

    def test_session_change_cancels_advance(self):
        trainer = make_trainer(self.catalog)
        token = advance_token(trainer.check(first_answer(trainer)))
        trainer.set_mode(MODE_FLASHCARD)
        current = trainer.current
        self.assertFalse(trainer.advance(token))
        self.assertIs(trainer.current, current)

    def test_changed_term_ignored(self):
        trainer = make_trainer(self.catalog)
        token = advance_token(trainer.check(first_answer(trainer)))
        other = next(item for item in trainer.items() if item.term != trainer.current.term)
        trainer.question = QuestionState(other)
        self.assertFalse(trainer.advance(token))
        self.assertIs(trainer.current, other)

    def test_cancel_advance(self):
        trainer = make_trainer(self.catalog)
        token = advance_token(trainer.check(first_answer(trainer)))
        trainer.cancel_advance()
        self.assertFalse(trainer.advance(token))


class TestTrainerFlashcard(unittest.TestCase):
    """Tests for multiple-choice mode."""

    def setUp(self):
        self.catalog = make_catalog(('A', 'aa'), ('B', 'bb'), ('C', 'cc'))

    def test_prepare_choices(self):
        catalog = make_catalog(*[(f"t{i}", f"tr{i}") for i in range(9)])
        trainer = make_trainer(catalog, mode=MODE_FLASHCARD)
        options = trainer.question.options
        self.assertEqual(len(options), 6)
        self.assertEqual(sum(1 for o in options if o['correct']), 1)
        self.assertEqual(options[trainer.question.correct_index]['text'], trainer.current.translation)
        self.assertIsNone(trainer.question_view()['correct_index'])

    def test_prepare_choices_small_pool(self):
        trainer = make_trainer(make_catalog(('A', 'aa')), mode=MODE_FLASHCARD)
        self.assertEqual(trainer.question.options, [{'text': 'aa', 'correct': True}])

    def test_correct_choice_is_ungraded(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        term = trainer.current.term
        result = trainer.choose(trainer.question.correct_index)

        self.assertTrue(result['correct'])
        self.assertEqual(result['outcome_status'], OUTCOME_CORRECT)
        self.assertEqual(trainer.mastery.box(term), MIN_BOX)
        self.assertEqual(trainer.streak, 0)
        self.assertEqual(trainer.answered_count, 0)
        self.assertTrue(trainer.done.is_done(MODE_FLASHCARD, trainer.session_key, term))
        self.assertEqual(trainer.flash_stats.correct, 1)
        self.assertEqual(result['effects'][-1]['delay_ms'], FLASHCARD_ADVANCE_DELAY_MS)

    def test_wrong_choice(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        term = trainer.current.term
        index = wrong_index(trainer)
        result = trainer.choose(index)

        self.assertFalse(result['correct'])
        self.assertEqual(result['outcome_status'], OUTCOME_WRONG)
        self.assertEqual(trainer.hard_words.count(term), 1)
        self.assertEqual(trainer.flash_stats.failed_terms, {term})
        self.assertEqual(trainer.mastery.box(term), MIN_BOX)
        self.assertIn(EFFECT_PERSIST, [e['type'] for e in result['effects']])
        self.assertIsNotNone(advance_token(result))

        view = trainer.question_view()
        self.assertEqual(view['selected_index'], index)
        self.assertEqual(view['correct_index'], trainer.question.correct_index)
        self.assertEqual(view['translation'], trainer.current.translation)

    def test_second_choice_ignored(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        trainer.choose(wrong_index(trainer))
        result = trainer.choose(trainer.question.correct_index)
        self.assertIsNone(result['correct'])
        self.assertEqual(trainer.flash_stats.correct, 0)

    def test_choice_out_of_range(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        with self.assertRaises(IndexError):
            trainer.choose(99)
        with self.assertRaises(IndexError):
            trainer.choose(-1)
        self.assertEqual(trainer.question.outcome_status, OUTCOME_IDLE)

    def test_retry_failed_only(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        fails = 0
        for _ in range(20):
            if trainer.current.term == 'B':
                result = trainer.choose(wrong_index(trainer))
                fails += 1
            else:
                result = trainer.choose(trainer.question.correct_index)
            trainer.advance(advance_token(result))
            done = trainer.done.terms(MODE_FLASHCARD, trainer.session_key)
            if fails >= 2 and done == {'A', 'C'}:
                break

        self.assertGreaterEqual(fails, 2)
        self.assertEqual(trainer.flash_stats.failed_terms, {'B'})
        self.assertEqual(trainer.hard_words.count('B'), fails)

        trainer.repeat_failed_flashcards()
        self.assertEqual({item.term for item, _ in trainer.build_pool()}, {'B'})
        self.assertEqual(trainer.current.term, 'B')
        self.assertEqual(trainer.flash_stats.correct, 0)
        self.assertEqual(trainer.flash_stats.failed_terms, {'B'})

    def test_retry_failed_without_failures_repeats_all(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        result = trainer.choose(trainer.question.correct_index)
        trainer.advance(advance_token(result))
        trainer.repeat_failed_flashcards()
        self.assertEqual(len(trainer.build_pool()), 3)
        self.assertIsNone(trainer.flash_repeat_terms)

    def test_repeat_all(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        trainer.choose(wrong_index(trainer))
        trainer.repeat_all_flashcards()
        self.assertEqual(len(trainer.build_pool()), 3)
        self.assertEqual(trainer.flash_stats.wrong, 0)

    def test_session_change_resets_stats(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        trainer.choose(wrong_index(trainer))
        trainer.set_category(ALL_CATEGORIES)
        self.assertEqual(trainer.flash_stats.wrong, 0)
        self.assertEqual(trainer.flash_stats.failed_terms, set())

    def test_reselecting_same_scope_keeps_stats(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        term = trainer.current.term
        token = advance_token(trainer.choose(wrong_index(trainer)))
        trainer.set_mode(MODE_FLASHCARD)
        self.assertEqual(trainer.flash_stats.wrong, 1)
        self.assertEqual(trainer.flash_stats.failed_terms, {term})
        self.assertEqual(trainer.current.term, term)
        self.assertTrue(trainer.advance(token))

    def test_written_answer_ignored(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        term = trainer.current.term
        result = trainer.check(first_answer(trainer))
        self.assertIsNone(result['correct'])
        self.assertEqual(result['effects'], [])
        self.assertEqual(trainer.mastery.box(term), 0)
        self.assertEqual(trainer.streak, 0)
        self.assertEqual(trainer.answered_count, 0)
        self.assertEqual(trainer.wrong_count, 0)
        self.assertNotIn(term, trainer.hard_words)

    def test_flashcard_summary(self):
        trainer = make_trainer(self.catalog, mode=MODE_FLASHCARD)
        trainer.choose(trainer.question.correct_index)
        summary = trainer.flashcard_summary()
        self.assertEqual(summary['total'], 3)
        self.assertEqual(summary['unique_correct'], 1)
        self.assertEqual(summary['remaining'], 2)
        self.assertEqual(summary['answered'], 1)
        self.assertEqual(summary['accuracy'], 100.0)


class TestTrainerSession(unittest.TestCase):
    """Tests for session scope changes and derived statistics."""

    def setUp(self):
        self.catalog = Catalog.seed()

    def test_set_language_resets_level_and_category(self):
        trainer = Trainer(self.catalog, 'en', 'B1', 'home', rng=random.Random(1))
        trainer.start_session()
        self.assertIn(trainer.current.term, {'drawer', 'ceiling'})
        trainer.set_language('de')
        self.assertEqual(trainer.level, 'A1')
        self.assertEqual(trainer.category, ALL_CATEGORIES)
        self.assertEqual(trainer.current.language, 'de')

    def test_categories(self):
        trainer = Trainer(self.catalog, 'de')
        self.assertEqual(trainer.categories(), [ALL_CATEGORIES, 'essen', 'tiere'])

    def test_level_stats(self):
        trainer = Trainer(self.catalog, 'en')
        trainer.mastery.grade('dog', True)
        stats = {row['level']: row for row in trainer.level_stats()}
        self.assertEqual(stats['A1'], {'level': 'A1', 'total': 12, 'mastered': 1, 'pct': 8})
        self.assertEqual(stats['A2']['total'], 2)
        self.assertEqual(stats['C1'], {'level': 'C1', 'total': 0, 'mastered': 0, 'pct': 0})
        self.assertEqual(trainer.mastered_count, 1)
        self.assertEqual(trainer.total_level_words, 12)
        self.assertAlmostEqual(trainer.level_progress, 100 / 12)

    def test_weighted_items(self):
        trainer = Trainer(self.catalog, 'en', 'A1', 'transport')
        trainer.mastery.grade('car', True)
        weights = {item.term: weight for item, weight in trainer.weighted_items()}
        self.assertEqual(weights, {'car': 4, 'bike': 5, 'train': 5})

    def test_status(self):
        trainer = make_trainer(self.catalog, category='animals')
        status = trainer.status()
        self.assertEqual(status['mode'], MODE_WRITE)
        self.assertEqual(status['hard_words_count'], 0)
        self.assertEqual(len(status['level_stats']), 5)
        self.assertEqual(status['flashcard']['total'], 5)


class TestTrainerPersistence(unittest.TestCase):
    """Tests for snapshots and restore."""

    def setUp(self):
        self.catalog = make_catalog(('dog', 'perro'), ('cat', 'gato'))

    def test_snapshot_round_trip(self):
        storage = MockStorage()
        trainer = make_trainer(self.catalog)
        term = trainer.current.term
        trainer.check(first_answer(trainer))
        storage.save_state(trainer.to_dict(), 'u1')

        restored = Trainer.from_dict(storage.load_state('u1'), self.catalog)
        self.assertEqual(restored.mastery.box(term), 1)
        self.assertEqual(restored.answered_count, 1)
        self.assertEqual(restored.streak, 1)
        self.assertEqual(restored.mastery.get(term).last_updated, 1000.0)

    def test_guest_snapshot_has_no_counters(self):
        trainer = make_trainer(self.catalog)
        state = trainer.to_dict(include_counters=False)
        self.assertEqual(set(state), {'progress', 'hard_words', 'updated_at'})

    def test_load_state_ignores_malformed_fields(self):
        trainer = Trainer(self.catalog)
        trainer.load_state({
            'progress': {'dog': {'box': 9}},
            'hard_words': 'nope',
            'streak': -1,
            'answered_count': True,
            'wrong_count': 4
        })
        self.assertEqual(trainer.mastery.box('dog'), MAX_BOX)
        self.assertEqual(len(trainer.hard_words), 0)
        self.assertEqual(trainer.streak, 0)
        self.assertEqual(trainer.answered_count, 0)
        self.assertEqual(trainer.wrong_count, 4)

    def test_load_empty_state(self):
        trainer = Trainer(self.catalog)
        trainer.load_state(None)
        trainer.load_state({})
        self.assertEqual(len(trainer.mastery), 0)


class TestMockStorage(unittest.TestCase):
    """Tests for MockStorage to ensure it works correctly."""

    def test_save_state_merges(self):
        storage = MockStorage()
        storage.save_state({'progress': {}, 'streak': 3})
        storage.save_state({'progress': {'dog': {'box': 1}}})
        self.assertEqual(storage.load_state()['streak'], 3)
        self.assertEqual(len(storage.save_calls), 2)

    def test_users(self):
        storage = MockStorage()
        storage.save_state({}, 'u2')
        self.assertTrue(storage.user_exists('u2'))
        self.assertEqual(storage.list_users(), ['u2'])


if __name__ == '__main__':
    unittest.main()
