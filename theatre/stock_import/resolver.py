"""
Fuzzy Resolver - match free text against a known vocabulary.

Priority: exact (normalized) > prefix > substring > edit distance within
the threshold > the cleaned input itself. The resolver never fails; a
value it cannot place passes through literally for the operator to review.
"""

import re
from typing import Iterable, Optional, Sequence


DEFAULT_MAX_DISTANCE = 2


def normalize_token(value) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    if value is None:
        return ""
    return re.sub(r"[^a-z0-9]", "", str(value).lower())


def levenshtein(a: str, b: str) -> int:
    """
    Classic edit distance (insert/delete/substitute cost 1) over normalized strings.

    O(len(a) * len(b)); keeps two rows of the DP table.
    """
    a = normalize_token(a)
    b = normalize_token(b)
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def resolve(input_value, candidates: Iterable[str], max_distance: int = DEFAULT_MAX_DISTANCE) -> str:
    """
    Return the best candidate for input_value, or the trimmed input.

    Args:
        input_value: Free text typed by an operator or read from a file
        candidates: Known valid values; the returned match keeps their spelling
        max_distance: Largest accepted edit distance for the last-resort match

    Returns:
        Matched candidate, or the cleaned input unchanged ("" for blank input)
    """
    raw = "" if input_value is None else str(input_value).strip()
    if not raw:
        return ""

    options = [c for c in candidates if c is not None and str(c).strip()]
    if not options:
        return raw

    needle = normalize_token(raw)
    normalized = [(option, normalize_token(option)) for option in options]

    # 1. Exact (case/punctuation-insensitive)
    for option, norm in normalized:
        if norm == needle:
            return option

    if needle:
        # 2. Prefix
        for option, norm in normalized:
            if norm.startswith(needle):
                return option
        # 3. Substring
        for option, norm in normalized:
            if needle in norm:
                return option

        # 4. Edit distance; first minimum wins ties
        best: Optional[str] = None
        best_distance = None
        for option, norm in normalized:
            distance = levenshtein(needle, norm)
            if best_distance is None or distance < best_distance:
                best, best_distance = option, distance

        if best is not None and best_distance <= max_distance:
            return best

    # 5. Literal pass-through
    return raw


class FuzzyResolver:
    """
    Resolver with a fixed threshold and a per-vocabulary memo.

    Reconciliation resolves each distinct (value, vocabulary) pair once, so
    cost tracks distinct values rather than row count.
    """

    def __init__(self, max_distance: int = DEFAULT_MAX_DISTANCE):
        self.max_distance = max_distance
        self._cache: dict[tuple[str, tuple[str, ...]], str] = {}

    def resolve(self, input_value, candidates: Sequence[str]) -> str:
        vocabulary = tuple(candidates)
        key = ("" if input_value is None else str(input_value).strip(), vocabulary)
        if key not in self._cache:
            self._cache[key] = resolve(key[0], vocabulary, self.max_distance)
        return self._cache[key]

    def is_known(self, value: str, candidates: Iterable[str]) -> bool:
        """True when value equals a candidate after normalization."""
        needle = normalize_token(value)
        return any(normalize_token(c) == needle for c in candidates)

    def clear(self):
        self._cache.clear()
