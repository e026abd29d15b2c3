"""
Unit tests for the extraction orchestrator.

Covers strategy selection, fallback on adapter failure and the final
invariant guard.
"""
import asyncio
import json
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ledgerline.config import Settings
from ledgerline.extraction.bedrock import BedrockExtractor
from ledgerline.extraction.models import ExtractionStrategy, OutcomeStatus, ParsedTransaction
from ledgerline.extraction.orchestrator import (
    TransactionExtractionService,
    coerce_date,
    enforce_invariants,
    get_extraction_service,
)

TEXT = "Starbucks Coffee 12/15/2024 ₹420.00"


def ai_service(reply: dict = None, side_effect: Exception = None):
    """Service whose adapter is configured and backed by a mock client."""
    client = MagicMock()
    if side_effect is not None:
        client.messages.create = AsyncMock(side_effect=side_effect)
    else:
        response = SimpleNamespace(content=[SimpleNamespace(text=json.dumps(reply))])
        client.messages.create = AsyncMock(return_value=response)

    settings = Settings(
        aws_region="ap-south-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="test-secret",
    )
    return TransactionExtractionService(ai_extractor=BedrockExtractor(settings=settings, client=client)), client


class TestStrategySelection:
    """Which strategy runs."""

    @pytest.mark.asyncio
    async def test_not_configured_uses_regex(self):
        client = MagicMock()
        client.messages.create = AsyncMock()
        settings = Settings(aws_region=None, aws_access_key_id=None, aws_secret_access_key=None)
        service = TransactionExtractionService(ai_extractor=BedrockExtractor(settings=settings, client=client))

        outcome = await service.extract(TEXT)

        assert outcome.strategy == ExtractionStrategy.REGEX
        assert outcome.parsed.reasoning is None
        assert outcome.parsed.amount == Decimal("420.00")
        client.messages.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_configured_uses_ai(self):
        service, client = ai_service({
            "amount": -420.0,
            "date": "2024-12-15",
            "description": "Starbucks Coffee",
            "category": "food & dining",
            "confidence": 0.93,
            "reasoning": "Coffee shop",
        })

        outcome = await service.extract(TEXT)

        assert outcome.strategy == ExtractionStrategy.AI
        assert outcome.status == OutcomeStatus.SUCCESS
        parsed = outcome.parsed
        assert parsed.amount == Decimal("420.0")
        assert parsed.date == date(2024, 12, 15)
        assert parsed.category == "Food & Dining"
        assert parsed.confidence == 0.93
        assert parsed.reasoning == "Coffee shop"
        client.messages.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ai_unknown_category_dropped(self):
        service, _ = ai_service({"category": "Groceries", "confidence": 0.6})

        parsed = await service.parse_transaction_text(TEXT)

        assert parsed.category is None
        assert parsed.confidence == 0.6

    @pytest.mark.asyncio
    async def test_ai_unparseable_date_is_null(self):
        service, _ = ai_service({"amount": 10, "date": "sometime last week", "confidence": 0.6})

        parsed = await service.parse_transaction_text(TEXT)

        assert parsed.date is None
        assert parsed.amount == Decimal("10")

    @pytest.mark.asyncio
    async def test_degraded_ai_result_is_not_blended_with_regex(self):
        service, _ = ai_service(side_effect=RuntimeError("throttled"))

        outcome = await service.extract(TEXT)

        assert outcome.strategy == ExtractionStrategy.AI
        assert outcome.status == OutcomeStatus.DEGRADED
        assert outcome.parsed.confidence == 0
        assert outcome.parsed.amount is None
        assert outcome.parsed.reasoning == "Extraction failed: throttled"

    @pytest.mark.asyncio
    async def test_adapter_raising_falls_back_to_regex(self):
        adapter = MagicMock()
        adapter.is_configured.return_value = True
        adapter.extract = AsyncMock(side_effect=RuntimeError("bypassed internal handling"))
        service = TransactionExtractionService(ai_extractor=adapter)

        outcome = await service.extract(TEXT)

        assert outcome.strategy == ExtractionStrategy.REGEX
        assert outcome.parsed.amount == Decimal("420.00")
        assert outcome.parsed.reasoning is None

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_regex(self):
        async def slow_call(**kwargs):
            await asyncio.sleep(1)

        client = MagicMock()
        client.messages.create = slow_call
        settings = Settings(
            aws_region="ap-south-1",
            aws_access_key_id="AKIATEST",
            aws_secret_access_key="test-secret",
        )
        service = TransactionExtractionService(
            ai_extractor=BedrockExtractor(settings=settings, client=client),
            timeout_seconds=0.01,
        )

        outcome = await service.extract(TEXT)

        assert outcome.strategy == ExtractionStrategy.REGEX
        assert outcome.parsed.amount == Decimal("420.00")
        assert outcome.parsed.reasoning is None

    @pytest.mark.asyncio
    async def test_never_raises_on_empty_text(self):
        settings = Settings(aws_region=None, aws_access_key_id=None, aws_secret_access_key=None)
        service = TransactionExtractionService(ai_extractor=BedrockExtractor(settings=settings))

        parsed = await service.parse_transaction_text("zzz qqq")

        assert parsed.confidence == 0

    def test_singleton(self):
        assert get_extraction_service() is get_extraction_service()


class TestCoerceDate:
    """Tests for converting model date strings."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2025-12-11", date(2025, 12, 11)),
            (" 2025-12-11 ", date(2025, 12, 11)),
            ("2025-12-11T10:30:00", date(2025, 12, 11)),
            ("2025-12-11T10:30:00Z", date(2025, 12, 11)),
            ("11/12/2025", None),
            ("2025-02-30", None),
            ("", None),
            (None, None),
        ],
    )
    def test_values(self, value, expected):
        assert coerce_date(value) == expected


class TestEnforceInvariants:
    """Tests for the final guard."""

    def test_clamps_confidence(self):
        assert enforce_invariants(ParsedTransaction(confidence=1.7)).confidence == 1.0
        assert enforce_invariants(ParsedTransaction(confidence=-0.2)).confidence == 0.0
        assert enforce_invariants(ParsedTransaction(confidence=float("nan"))).confidence == 0.0

    def test_absolute_amount(self):
        parsed = enforce_invariants(ParsedTransaction(amount=Decimal("-12.50"), confidence=0.5))
        assert parsed.amount == Decimal("12.50")

    def test_truncates_description(self):
        parsed = enforce_invariants(ParsedTransaction(description="d" * 300, confidence=0.5))
        assert len(parsed.description) == 255

    def test_maps_category_onto_enumeration(self):
        assert enforce_invariants(ParsedTransaction(category="  SHOPPING ")).category == "Shopping"
        assert enforce_invariants(ParsedTransaction(category="Travel")).category is None

    def test_keeps_reasoning(self):
        parsed = enforce_invariants(ParsedTransaction(reasoning="why"))
        assert parsed.reasoning == "why"
