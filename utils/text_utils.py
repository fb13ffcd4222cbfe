"""
Text utilities for product title matching.

Used by the fuzzy title step of variant resolution.
"""

import re
import unicodedata
from typing import Optional

TITLE_EXACT_SCORE = 1.0
CONTAINMENT_BONUS = 0.22
PREFIX_BONUS = 0.08
PREFIX_LENGTH = 10

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: Optional[str]) -> str:
    """
    Normalize a product title for comparison.

    - "Blue Hoodie (XL)" → "blue hoodie xl"
    - "Café  Crème" → "cafe creme"
    - "  " → ""

    Args:
        title: Raw title (may have accents, punctuation, mixed case)

    Returns:
        Lowercase ASCII words separated by single spaces
    """
    if not title:
        return ""

    # Separate accents from base characters, then drop the accents
    decomposed = unicodedata.normalize("NFD", title)
    ascii_title = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")

    text = _NON_ALNUM.sub(" ", ascii_title.lower())
    return _WHITESPACE.sub(" ", text).strip()


def jaccard_token_similarity(a: str, b: str) -> float:
    """Jaccard index of the space-separated token sets of two normalized strings."""
    a_tokens = {token for token in a.split(" ") if token}
    b_tokens = {token for token in b.split(" ") if token}

    if not a_tokens or not b_tokens:
        return 0.0

    intersection = len(a_tokens & b_tokens)
    union = len(a_tokens | b_tokens)
    return intersection / union if union else 0.0


def title_similarity(input_title: Optional[str], candidate_title: Optional[str]) -> float:
    """
    Score how well a catalog title matches a spreadsheet title.

    Token Jaccard similarity, plus a bonus when one title contains the
    other and a smaller bonus when the first 10 characters agree.
    Bonuses only apply when the titles share at least one token.
    Identical normalized titles score 1.0; the result never exceeds 1.0.

    Args:
        input_title: Title from the spreadsheet row
        candidate_title: Title of a catalog product

    Returns:
        Score in [0, 1]
    """
    left = normalize_title(input_title)
    right = normalize_title(candidate_title)

    if not left or not right:
        return 0.0

    if left == right:
        return TITLE_EXACT_SCORE

    score = jaccard_token_similarity(left, right)
    if score == 0.0:
        return 0.0

    if left in right or right in left:
        score += CONTAINMENT_BONUS

    if left[:PREFIX_LENGTH] == right[:PREFIX_LENGTH]:
        score += PREFIX_BONUS

    return min(TITLE_EXACT_SCORE, score)
