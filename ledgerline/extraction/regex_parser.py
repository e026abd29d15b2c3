"""
Rule-based fallback parser.

Composes the four heuristic field extractors and accumulates a confidence
score from the fields that matched. Deterministic and side-effect free.
"""

from typing import Optional

import structlog

from ledgerline.extraction.models import (
    ExtractionOutcome,
    ExtractionStrategy,
    ParsedTransaction,
)
from ledgerline.extraction.normalization import normalize_text
from ledgerline.extraction.rules import (
    extract_amount,
    extract_category,
    extract_date,
    extract_description,
)

logger = structlog.get_logger(__name__)

MAX_CONFIDENCE = 1.0


def parse_with_regex(text: str) -> ParsedTransaction:
    """
    Parse raw statement text with the heuristic rules.

    Amount, date and category anchor the result: when none of them is found
    the text carries no recognizable transaction and the empty result
    (confidence exactly 0) is returned. Otherwise the weights earned by every
    matched field, description included, are summed and clamped to 1.0.

    Args:
        text: Raw statement text.

    Returns:
        ParsedTransaction; ``reasoning`` is never set on this path.
    """
    normalized = normalize_text(text)

    amount = extract_amount(normalized)
    txn_date = extract_date(normalized)
    description = extract_description(normalized)
    category = extract_category(normalized)

    if not (amount.matched or txn_date.matched or category.matched):
        return ParsedTransaction.empty()

    score = amount.weight + txn_date.weight + description.weight + category.weight
    confidence = min(round(score, 4), MAX_CONFIDENCE)

    return ParsedTransaction(
        amount=amount.value,
        date=txn_date.value,
        description=description.value,
        category=category.value.value if category.matched else None,
        confidence=confidence,
    )


class RegexTransactionParser:
    """Fallback extraction strategy; always available, never degraded."""

    strategy = ExtractionStrategy.REGEX

    def extract(self, text: str) -> ExtractionOutcome:
        parsed = parse_with_regex(text)
        logger.debug(
            "regex_extraction_complete",
            text_length=len(text or ""),
            confidence=parsed.confidence,
        )
        return ExtractionOutcome.success(self.strategy, parsed)


# Singleton instance
_parser_instance: Optional[RegexTransactionParser] = None


def get_regex_parser() -> RegexTransactionParser:
    """Get singleton RegexTransactionParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = RegexTransactionParser()
    return _parser_instance
