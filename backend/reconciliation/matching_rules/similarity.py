"""
String Similarity Scorer

Normalised edit-distance similarity between two free-text fields
(descriptions, party names).

Rules, in order:
- exact match after normalisation: 1.0
- either side shorter than the minimum length: 0.0
- one side contained in the other: 0.8 ("PIX JOAO SILVA" vs "JOAO SILVA")
- otherwise 1 - levenshtein / max(len)
"""

import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

SUBSTRING_SIMILARITY = 0.8
DEFAULT_MIN_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, trim and strip punctuation."""
    if not text:
        return ""
    return _NON_WORD.sub("", str(text).lower().strip())


def string_similarity(a: Optional[str], b: Optional[str], min_length: int = DEFAULT_MIN_LENGTH) -> float:
    """
    Similarity score in [0, 1] between two strings.

    Never raises: empty or missing input scores 0.0.
    """
    if not a or not b:
        return 0.0

    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 1.0
    if len(s1) < min_length or len(s2) < min_length:
        return 0.0

    if s1 in s2 or s2 in s1:
        return SUBSTRING_SIMILARITY

    distance = Levenshtein.distance(s1, s2)
    return max(0.0, 1 - distance / max(len(s1), len(s2)))
