"""
Extraction orchestrator.

Chooses exactly one strategy per call: the AI adapter when it is configured,
the rule-based parser otherwise, when the adapter call blows up or when it
runs past the deadline. The two results are never merged. Whatever path ran,
the returned ParsedTransaction satisfies the pipeline invariants.
"""
import asyncio
import math
from datetime import date, datetime
from typing import Optional

import structlog

from ledgerline.config import get_settings
from ledgerline.extraction.bedrock import AIExtraction, BedrockExtractor, get_bedrock_extractor
from ledgerline.extraction.models import (
    MAX_DESCRIPTION_LENGTH,
    ExtractionOutcome,
    ExtractionStrategy,
    ParsedTransaction,
    TransactionCategory,
)
from ledgerline.extraction.regex_parser import RegexTransactionParser, get_regex_parser
from ledgerline.middleware.logging import log_performance

logger = structlog.get_logger(__name__)


def coerce_date(value: Optional[str]) -> Optional[date]:
    """
    Convert the model's date string into a calendar date.

    Accepts ``YYYY-MM-DD`` and full ISO timestamps; anything else is None.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def enforce_invariants(parsed: ParsedTransaction) -> ParsedTransaction:
    """Clamp a result from either strategy into the ParsedTransaction contract."""
    amount = parsed.amount
    if amount is not None:
        amount = abs(amount) if amount.is_finite() else None

    confidence = parsed.confidence
    if confidence is None or not math.isfinite(confidence):
        confidence = 0.0
    confidence = min(max(float(confidence), 0.0), 1.0)

    description = parsed.description
    if description is not None:
        description = description[:MAX_DESCRIPTION_LENGTH] or None

    category = TransactionCategory.coerce(parsed.category)

    return parsed.with_changes(
        amount=amount,
        confidence=confidence,
        description=description,
        category=category.value if category else None,
    )


def _from_ai(result: AIExtraction) -> ParsedTransaction:
    return ParsedTransaction(
        amount=result.amount,
        date=coerce_date(result.date),
        description=result.description,
        category=result.category,
        confidence=result.confidence,
        reasoning=result.reasoning,
    )


class TransactionExtractionService:
    """
    Turns raw statement text into one ParsedTransaction.

    Usage:
        service = get_extraction_service()
        parsed = await service.parse_transaction_text(text)
    """

    def __init__(
        self,
        ai_extractor: Optional[BedrockExtractor] = None,
        regex_parser: Optional[RegexTransactionParser] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.ai_extractor = ai_extractor or get_bedrock_extractor()
        self.regex_parser = regex_parser or get_regex_parser()
        self.timeout_seconds = timeout_seconds or get_settings().ai_timeout_seconds

    @log_performance("transaction_extraction")
    async def extract(self, text: str) -> ExtractionOutcome:
        """
        Run the selected strategy and tag the result.

        Args:
            text: Raw statement text, passed unmodified to either strategy.

        Returns:
            ExtractionOutcome whose ``parsed`` field satisfies all invariants.
        """
        if self.ai_extractor.is_configured():
            try:
                result = await asyncio.wait_for(
                    self.ai_extractor.extract(text), timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning("ai_extraction_timeout", timeout=self.timeout_seconds)
            except Exception as e:
                logger.error(
                    "ai_extraction_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                parsed = enforce_invariants(_from_ai(result))
                if result.failed:
                    logger.warning("ai_extraction_degraded", reasoning=result.reasoning)
                    return ExtractionOutcome.degraded(
                        ExtractionStrategy.AI, result.reasoning or "unknown error", parsed=parsed
                    )
                return ExtractionOutcome.success(ExtractionStrategy.AI, parsed)
        else:
            logger.debug("ai_extraction_not_configured")

        outcome = self.regex_parser.extract(text)
        return ExtractionOutcome(
            strategy=outcome.strategy,
            status=outcome.status,
            parsed=enforce_invariants(outcome.parsed),
            reason=outcome.reason,
        )

    async def parse_transaction_text(self, text: str) -> ParsedTransaction:
        """Extract and return only the parsed fields."""
        outcome = await self.extract(text)
        logger.info(
            "transaction_parsed",
            strategy=outcome.strategy.value,
            status=outcome.status.value,
            confidence=outcome.parsed.confidence,
            text_length=len(text or ""),
        )
        return outcome.parsed


# Singleton instance
_service_instance: Optional[TransactionExtractionService] = None


def get_extraction_service() -> TransactionExtractionService:
    """Get singleton TransactionExtractionService instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = TransactionExtractionService()
    return _service_instance
