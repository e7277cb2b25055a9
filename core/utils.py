"""Text normalization helpers used by answer matching."""

import re
import unicodedata

from .config import ARTICLES


def normalize(raw: str) -> str:
    """Lower-case, strip diacritics and collapse whitespace."""
    text = (raw or '').lower()
    text = unicodedata.normalize('NFD', text)
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r'\s+', ' ', text).strip()


def strip_articles(text: str) -> str:
    """Drop Spanish and English articles anywhere in the phrase."""
    return ' '.join(w for w in text.split() if w not in ARTICLES)


def singularize_last_word(text: str) -> str:
    """Crude singular form: only the last word, only trailing 'es' or 's'."""
    words = text.split()
    if not words:
        return text
    last = words[-1]
    if len(last) > 3 and last.endswith('es'):
        last = last[:-2]
    elif len(last) > 2 and last.endswith('s'):
        last = last[:-1]
    words[-1] = last
    return ' '.join(words)


def to_base_form(raw: str) -> str:
    """Normalized answer without articles and with the last word singularized."""
    text = normalize(raw)
    if not text:
        return ''
    text = strip_articles(text)
    return singularize_last_word(text)
