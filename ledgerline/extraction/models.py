"""
Data structures for the transaction extraction pipeline.

- TransactionCategory: closed set of categories a transaction may carry
- ParsedTransaction: the uniform result of either extraction strategy
- ExtractionOutcome: tagged success/degraded wrapper kept for diagnostics
"""

from dataclasses import dataclass, field, replace
from datetime import date as calendar_date
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

MAX_DESCRIPTION_LENGTH = 255

# Confidence thresholds used for display labels
HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

T = TypeVar("T")


class TransactionCategory(str, Enum):
    """Closed enumeration of transaction categories."""
    FOOD_AND_DINING = "Food & Dining"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    HEALTHCARE = "Healthcare"
    TRANSFER = "Transfer"
    INCOME = "Income"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Optional[str]) -> Optional["TransactionCategory"]:
        """Map a free-form label onto the enumeration, case-insensitively."""
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        return None


class ExtractionStrategy(str, Enum):
    """Which strategy produced a result."""
    AI = "ai"
    REGEX = "regex"


class OutcomeStatus(str, Enum):
    """Whether the strategy completed or degraded to an empty result."""
    SUCCESS = "success"
    DEGRADED = "degraded"


def degraded_reasoning(reason: str) -> str:
    return f"Extraction failed: {reason}"


def confidence_label(confidence: float) -> str:
    """Human label for a confidence score: High, Medium or Low."""
    if confidence >= HIGH_CONFIDENCE:
        return "High"
    if confidence >= MEDIUM_CONFIDENCE:
        return "Medium"
    return "Low"


@dataclass(frozen=True)
class ParsedTransaction:
    """
    Structured fields extracted from one bank-statement fragment.

    ``confidence`` is mandatory and always within [0, 1]. Every other field
    is optional; ``reasoning`` is diagnostic only.
    """
    amount: Optional[Decimal] = None
    date: Optional[calendar_date] = None
    description: Optional[str] = None
    category: Optional[str] = None
    confidence: float = 0.0
    reasoning: Optional[str] = None

    @classmethod
    def empty(cls, reasoning: Optional[str] = None) -> "ParsedTransaction":
        """Total-failure result: nothing extracted, confidence exactly 0."""
        return cls(confidence=0.0, reasoning=reasoning)

    @property
    def confidence_label(self) -> str:
        return confidence_label(self.confidence)

    def with_changes(self, **changes) -> "ParsedTransaction":
        return replace(self, **changes)


@dataclass(frozen=True)
class FieldMatch(Generic[T]):
    """Value found by a field extractor, the weight it earns and the rule that matched."""
    value: Optional[T] = None
    weight: float = 0.0
    rule: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.value is not None


NO_MATCH: FieldMatch = FieldMatch()


@dataclass(frozen=True)
class ExtractionOutcome:
    """
    Tagged result of one extraction strategy.

    Success and degraded outcomes both carry a well-formed ParsedTransaction;
    ``reason`` keeps the diagnostic for degraded ones.
    """
    strategy: ExtractionStrategy
    status: OutcomeStatus
    parsed: ParsedTransaction = field(default_factory=ParsedTransaction)
    reason: Optional[str] = None

    @classmethod
    def success(cls, strategy: ExtractionStrategy, parsed: ParsedTransaction) -> "ExtractionOutcome":
        return cls(strategy=strategy, status=OutcomeStatus.SUCCESS, parsed=parsed)

    @classmethod
    def degraded(
        cls,
        strategy: ExtractionStrategy,
        reason: str,
        parsed: Optional[ParsedTransaction] = None,
    ) -> "ExtractionOutcome":
        return cls(
            strategy=strategy,
            status=OutcomeStatus.DEGRADED,
            parsed=parsed or ParsedTransaction.empty(reasoning=degraded_reasoning(reason)),
            reason=reason,
        )

    @property
    def is_degraded(self) -> bool:
        return self.status is OutcomeStatus.DEGRADED
