"""Configuration constants for vocadrill."""

DEFAULT_LANGUAGE = 'en'
DEFAULT_CATEGORY = 'general'
LEVELS = ['A1', 'A2', 'B1', 'B2', 'C1']
DEFAULT_LEVEL = 'A1'
ALL_CATEGORIES = 'all'  # Category sentinel that disables the category filter

# Practice modes
MODE_WRITE = 'write'
MODE_FLASHCARD = 'flashcard'
MODE_HARD = 'hard'
MODES = [MODE_WRITE, MODE_FLASHCARD, MODE_HARD]

# Leitner boxes
MIN_BOX = 0
MAX_BOX = 4
WEIGHT_CEILING = 5  # weight = max(MIN_WEIGHT, WEIGHT_CEILING - box)
MIN_WEIGHT = 1

# Fuzzy matching
SHORT_WORD_MAX_LENGTH = 4   # Words up to this length tolerate SHORT_WORD_ERRORS
SHORT_WORD_ERRORS = 1
LONG_WORD_ERRORS = 2
ANSWER_DELIMITERS = r'[;|/]'
ARTICLES = {'el', 'la', 'los', 'las', 'un', 'una', 'unos', 'unas', 'the', 'a', 'an'}

# Question flow
WRITE_ADVANCE_DELAY_MS = 1300      # Pause after a correct written answer
FLASHCARD_ADVANCE_DELAY_MS = 700   # Pause after any multiple-choice answer
MOTIVATION_EVERY_N_WRONG = 5
MAX_DISTRACTORS = 5

# Guest users persist locally only
GUEST_PREFIX = 'guest'
GUEST_SEPARATORS = ('-', '_')

DEFAULT_MOTIVATION_MESSAGES = [
    "💪 ¡Ánimo! Vas en la dirección correcta.",
    "🌟 Puedes con esto. Una más y lo clavas.",
    "🚀 Los fallos te hacen mejorar. ¡Sigue!",
    "🧠 Repetir = recordar. ¡Buen trabajo!",
    "🔥 No te rindas: cada intento suma.",
    "🏆 Pasito a pasito se llega lejos.",
    "✨ Lo estás haciendo muy bien, ¡continúa!",
]

# Question feedback
FEEDBACK_OK = 'ok'
FEEDBACK_FIRST_WRONG = 'first_wrong'
FEEDBACK_SECOND_WRONG = 'second_wrong'

# Multiple-choice outcome
OUTCOME_IDLE = 'idle'
OUTCOME_CORRECT = 'correct'
OUTCOME_WRONG = 'wrong'

# Effects returned by trainer actions for the host to carry out
EFFECT_PERSIST = 'persist'
EFFECT_SCHEDULE_ADVANCE = 'schedule_advance'
