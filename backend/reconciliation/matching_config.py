"""
Reconciliation Matching Configuration

Immutable configuration for the bank-statement matching engine.
Each run receives its own MatchingConfig, so concurrent runs with
different settings never interfere.

Defaults:
- Date tolerance: ±2 days
- Amount tolerance: ±5%
- Weights: party 35%, description 25%, amount 25%, date 15%
- Confidence tiers: high ≥0.85 (auto-match), medium ≥0.65, low ≥0.45
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, Any, List, Mapping, Optional

from reconciliation.exceptions import InvalidConfigurationError


WEIGHT_SUM_TOLERANCE = 1e-9

INTEGER_FIELDS = ("date_tolerance_days", "max_matches", "min_description_length")
NUMERIC_FIELDS = ("amount_tolerance_percent", "similarity_threshold")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfidenceLevel(str, Enum):
    """
    Confidence tiers for a match candidate.
    """
    HIGH = "high"       # Auto-match
    MEDIUM = "medium"   # Suggested match
    LOW = "low"         # Plausible, needs review


class MatchStatus(str, Enum):
    """
    Outcome for a statement line after a matching run.
    """
    MATCHED = "MATCHED"         # Auto-matched with high confidence
    SUGGESTED = "SUGGESTED"     # Medium confidence, needs review
    REVIEW = "REVIEW"           # Only low confidence candidates
    NO_MATCH = "NO_MATCH"       # No candidate above the floor


@dataclass(frozen=True)
class MatchWeights:
    """
    Weights for the four field scores. Must sum to 1.0.
    """
    party: float = 0.35
    description: float = 0.25
    amount: float = 0.25
    date: float = 0.15

    @property
    def total(self) -> float:
        return self.party + self.description + self.amount + self.date

    def to_dict(self) -> Dict[str, float]:
        return {
            "party": self.party,
            "description": self.description,
            "amount": self.amount,
            "date": self.date
        }


@dataclass(frozen=True)
class ConfidenceThresholds:
    """
    Cut points for the confidence tiers.
    """
    high: float = 0.85
    medium: float = 0.65
    low: float = 0.45

    def to_dict(self) -> Dict[str, float]:
        return {
            "high": self.high,
            "medium": self.medium,
            "low": self.low
        }


@dataclass(frozen=True)
class MatchingConfig:
    """
    Configuration for one matching run.

    Validated on construction; an invalid configuration can never exist.
    Use with_overrides() to derive a modified copy.
    """
    date_tolerance_days: int = 2
    amount_tolerance_percent: float = 0.05
    weights: MatchWeights = field(default_factory=MatchWeights)
    confidence_threshold: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    max_matches: int = 5
    min_description_length: int = 3
    similarity_threshold: float = 0.6

    def __post_init__(self):
        errors = self.validate()
        if errors:
            raise InvalidConfigurationError(errors)

    def _type_errors(self) -> List[str]:
        errors = []

        for key, expected in (("weights", MatchWeights), ("confidence_threshold", ConfidenceThresholds)):
            group = getattr(self, key)
            if not isinstance(group, expected):
                errors.append(f"{key} must be a {expected.__name__} or a mapping (got {group!r})")
                continue
            for name, value in group.to_dict().items():
                if not _is_number(value):
                    errors.append(f"{key}.{name} must be a number (got {value!r})")

        for name in INTEGER_FIELDS:
            value = getattr(self, name)
            if not _is_integer(value):
                errors.append(f"{name} must be an integer (got {value!r})")
        for name in NUMERIC_FIELDS:
            value = getattr(self, name)
            if not _is_number(value):
                errors.append(f"{name} must be a number (got {value!r})")

        return errors

    def validate(self) -> List[str]:
        """
        Check every configuration invariant.

        Returns:
            List of violated rules (empty when valid)
        """
        errors = self._type_errors()
        if errors:
            return errors

        w = self.weights
        for name, value in w.to_dict().items():
            if value < 0:
                errors.append(f"weights.{name} must be >= 0 (got {value})")
        if abs(w.total - 1.0) > WEIGHT_SUM_TOLERANCE:
            errors.append(f"weights must sum to 1.0 (got {w.total:.6f})")

        t = self.confidence_threshold
        for name, value in t.to_dict().items():
            if not 0.0 <= value <= 1.0:
                errors.append(f"confidence_threshold.{name} must be within [0, 1] (got {value})")
        if not t.high > t.medium > t.low:
            errors.append("confidence thresholds must be strictly ordered high > medium > low")

        if self.date_tolerance_days < 0:
            errors.append("date_tolerance_days must be >= 0")
        if self.amount_tolerance_percent < 0:
            errors.append("amount_tolerance_percent must be >= 0")
        if self.max_matches < 1:
            errors.append("max_matches must be >= 1")
        if self.min_description_length < 0:
            errors.append("min_description_length must be >= 0")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            errors.append("similarity_threshold must be within [0, 1]")

        return errors

    def classify(self, confidence: float) -> Optional[ConfidenceLevel]:
        """
        Map a confidence value to its tier.

        Returns None below the low threshold (candidate is discarded).
        """
        t = self.confidence_threshold
        if confidence >= t.high:
            return ConfidenceLevel.HIGH
        if confidence >= t.medium:
            return ConfidenceLevel.MEDIUM
        if confidence >= t.low:
            return ConfidenceLevel.LOW
        return None

    def with_overrides(self, **changes: Any) -> "MatchingConfig":
        """
        Return a new configuration with the given changes applied.

        weights and confidence_threshold accept partial mappings, merged
        over the current values. The receiver is never modified.

        Raises:
            InvalidConfigurationError: the merged configuration is invalid
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidConfigurationError([f"unknown configuration key: {k}" for k in unknown])

        for key in ("weights", "confidence_threshold"):
            if isinstance(changes.get(key), Mapping):
                try:
                    changes[key] = replace(getattr(self, key), **dict(changes[key]))
                except TypeError as e:
                    raise InvalidConfigurationError([f"{key}: {e}"]) from e

        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchingConfig":
        """Build a configuration from a plain mapping (as produced by to_dict)."""
        return DEFAULT_MATCHING_CONFIG.with_overrides(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date_tolerance_days": self.date_tolerance_days,
            "amount_tolerance_percent": self.amount_tolerance_percent,
            "weights": self.weights.to_dict(),
            "confidence_threshold": self.confidence_threshold.to_dict(),
            "max_matches": self.max_matches,
            "min_description_length": self.min_description_length,
            "similarity_threshold": self.similarity_threshold
        }


DEFAULT_MATCHING_CONFIG = MatchingConfig()
