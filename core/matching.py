"""Fuzzy comparison of free-text answers against accepted translations."""

import re

from .config import ANSWER_DELIMITERS, SHORT_WORD_MAX_LENGTH, SHORT_WORD_ERRORS, LONG_WORD_ERRORS
from .utils import to_base_form


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost for insert, delete and substitute."""
    m, n = len(a), len(b)
    if m == 0:
        return n
    if n == 0:
        return m

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dp[i][j] = min(
                dp[i - 1][j] + 1,
                dp[i][j - 1] + 1,
                dp[i - 1][j - 1] + cost
            )
    return dp[m][n]


def allowed_errors(length: int) -> int:
    """Number of typos tolerated for an answer of the given length."""
    return SHORT_WORD_ERRORS if length <= SHORT_WORD_MAX_LENGTH else LONG_WORD_ERRORS


def is_fuzzy_equal(user: str, gold: str) -> bool:
    """Compare one answer against one accepted translation."""
    u = to_base_form(user)
    g = to_base_form(gold)
    if not u or not g:
        return False
    if u == g:
        return True
    return levenshtein(u, g) <= allowed_errors(max(len(u), len(g)))


def split_answers(gold: str) -> list[str]:
    """Split a gold string like 'carro;coche|auto' into its alternatives."""
    if not gold:
        return []
    return [part.strip() for part in re.split(ANSWER_DELIMITERS, gold) if part.strip()]


def matches(user: str, gold: str) -> bool:
    """True if the answer is close enough to any accepted alternative."""
    return any(is_fuzzy_equal(user, answer) for answer in split_answers(gold))
