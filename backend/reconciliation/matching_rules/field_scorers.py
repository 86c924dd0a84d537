"""
Field Scorers

Independent scoring functions for one statement/transaction field pair.
Each returns a score in [0, 1] plus the detail used to explain it.
Missing data never raises; it scores 0.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from reconciliation.matching_config import MatchingConfig, DEFAULT_MATCHING_CONFIG
from reconciliation.matching_rules.similarity import string_similarity
from reconciliation.records import parse_amount, parse_date

# Party names above this similarity count as the same party
PARTY_MATCH_SIMILARITY = 0.8

# Amount scoring
WITHIN_TOLERANCE_FLOOR = 0.7
OUT_OF_TOLERANCE_BASE = 0.5
MAX_DEGRADATION = 5

# Date scoring
DATE_DECAY_BASE = 0.3
DATE_MAX_DAYS = 30

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class PartyScore:
    score: float
    party_match: bool


@dataclass(frozen=True)
class DescriptionScore:
    score: float
    similarity: float


@dataclass(frozen=True)
class AmountScore:
    score: float
    difference: float
    within_tolerance: bool


@dataclass(frozen=True)
class DateScore:
    score: float
    days_difference: Union[int, float]
    within_tolerance: bool


def score_party(
    party_id_a: Optional[str],
    party_id_b: Optional[str],
    party_name_a: Optional[str],
    party_name_b: Optional[str],
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> PartyScore:
    """
    Score party identity.

    Identifiers on both sides decide on their own (exact match or nothing).
    Without identifiers, display names are compared by similarity and only
    count at or above the similarity threshold.
    """
    if party_id_a and party_id_b:
        matched = str(party_id_a) == str(party_id_b)
        return PartyScore(score=1.0 if matched else 0.0, party_match=matched)

    if party_name_a and party_name_b:
        similarity = string_similarity(party_name_a, party_name_b, config.min_description_length)
        if similarity >= config.similarity_threshold:
            return PartyScore(score=similarity, party_match=similarity > PARTY_MATCH_SIMILARITY)

    return PartyScore(score=0.0, party_match=False)


def score_description(
    description_a: Optional[str],
    description_b: Optional[str],
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> DescriptionScore:
    """Raw description similarity; no threshold gating."""
    similarity = string_similarity(description_a, description_b, config.min_description_length)
    return DescriptionScore(score=similarity, similarity=similarity)


def score_amount(
    amount_a: Any,
    amount_b: Any,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> AmountScore:
    """
    Score amount proximity on absolute values.

    Within tolerance (a percentage of the average amount) the score never
    drops below 0.7. Outside, it decays as 0.5 / (diff / tolerance), with
    the penalty capped at 5x tolerance.
    """
    a = parse_amount(amount_a)
    b = parse_amount(amount_b)
    if not a or not b:
        return AmountScore(score=0.0, difference=math.inf, within_tolerance=False)

    abs_a = abs(a)
    abs_b = abs(b)
    difference = abs(abs_a - abs_b)
    tolerance = (abs_a + abs_b) / 2 * config.amount_tolerance_percent

    if difference <= tolerance:
        proximity = 1 - difference / tolerance if tolerance > 0 else 1.0
        return AmountScore(
            score=max(WITHIN_TOLERANCE_FLOOR, proximity),
            difference=difference,
            within_tolerance=True
        )

    degradation = min(MAX_DEGRADATION, difference / tolerance) if tolerance > 0 else MAX_DEGRADATION
    return AmountScore(
        score=max(0.0, OUT_OF_TOLERANCE_BASE / degradation),
        difference=difference,
        within_tolerance=False
    )


def _as_datetime(value: Any) -> Optional[datetime]:
    parsed = parse_date(value)
    if parsed is None:
        return None
    if isinstance(parsed, datetime):
        return parsed
    return datetime.combine(parsed, datetime.min.time())


def days_between(date_a: Any, date_b: Any) -> Optional[int]:
    """
    Whole days between two dates, rounded up.

    Returns None when either date is missing or the two cannot be compared
    (e.g. timezone-aware vs naive).
    """
    d1 = _as_datetime(date_a)
    d2 = _as_datetime(date_b)
    if d1 is None or d2 is None:
        return None
    try:
        seconds = abs((d1 - d2).total_seconds())
    except TypeError:
        return None
    return math.ceil(seconds / SECONDS_PER_DAY)


def score_date(
    date_a: Any,
    date_b: Any,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> DateScore:
    """
    Score date proximity.

    Within the tolerance window the score never drops below 0.7; up to 30
    days it decays linearly from 0.3; beyond that it is 0.
    """
    days = days_between(date_a, date_b)
    if days is None:
        return DateScore(score=0.0, days_difference=math.inf, within_tolerance=False)

    tolerance = config.date_tolerance_days
    if days <= tolerance:
        proximity = 1 - days / tolerance if tolerance > 0 else 1.0
        return DateScore(
            score=max(WITHIN_TOLERANCE_FLOOR, proximity),
            days_difference=days,
            within_tolerance=True
        )

    if days > DATE_MAX_DAYS:
        return DateScore(score=0.0, days_difference=days, within_tolerance=False)

    return DateScore(
        score=max(0.0, DATE_DECAY_BASE * (1 - days / DATE_MAX_DAYS)),
        days_difference=days,
        within_tolerance=False
    )
