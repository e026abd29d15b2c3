"""
Unit tests for the Bedrock AI extraction adapter.

The Anthropic Bedrock client is replaced by a mock; no network access.
"""
import json
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ledgerline.config import Settings
from ledgerline.exceptions import AIResponseParseError
from ledgerline.extraction.bedrock import (
    DEFAULT_MODEL_CONFIDENCE,
    BedrockExtractor,
    build_prompt,
    extract_json_object,
    get_bedrock_extractor,
    sanitize,
)


def configured_settings(**overrides) -> Settings:
    values = dict(
        aws_region="ap-south-1",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="test-secret",
    )
    values.update(overrides)
    return Settings(**values)


def mock_client(reply_text: str = None, side_effect: Exception = None) -> MagicMock:
    client = MagicMock()
    if side_effect is not None:
        client.messages.create = AsyncMock(side_effect=side_effect)
    else:
        response = SimpleNamespace(content=[SimpleNamespace(text=reply_text)])
        client.messages.create = AsyncMock(return_value=response)
    return client


STARBUCKS_REPLY = json.dumps({
    "amount": 420.0,
    "date": "2025-12-11",
    "description": "STARBUCKS COFFEE MUMBAI",
    "category": "Food & Dining",
    "confidence": 0.95,
    "reasoning": "Coffee shop transaction",
})


class TestConfiguration:
    """Tests for is_configured."""

    def test_configured_with_all_credentials(self):
        assert BedrockExtractor(settings=configured_settings()).is_configured() is True

    @pytest.mark.parametrize("missing", ["aws_region", "aws_access_key_id", "aws_secret_access_key"])
    def test_not_configured_when_any_missing(self, missing):
        extractor = BedrockExtractor(settings=configured_settings(**{missing: None}))
        assert extractor.is_configured() is False

    def test_singleton(self):
        assert get_bedrock_extractor() is get_bedrock_extractor()


class TestBuildPrompt:
    """Tests for the instruction contract."""

    def test_contains_text_and_categories(self):
        prompt = build_prompt("Starbucks Coffee ₹420")

        assert "Starbucks Coffee ₹420" in prompt
        assert '"Food & Dining"' in prompt
        assert '"Other"' in prompt
        assert "YYYY-MM-DD" in prompt
        assert "max 255 chars" in prompt


class TestExtractJsonObject:
    """Tests for pulling JSON out of model replies."""

    def test_plain_json(self):
        assert extract_json_object('{"amount": 1}') == {"amount": 1}

    def test_fenced_json(self):
        reply = 'Here is the result:\n```json\n{"amount": 2, "category": "Shopping"}\n```'
        assert extract_json_object(reply) == {"amount": 2, "category": "Shopping"}

    def test_prose_wrapped_json(self):
        reply = 'Sure! {"amount": 3, "confidence": 0.7} Hope that helps.'
        assert extract_json_object(reply) == {"amount": 3, "confidence": 0.7}

    @pytest.mark.parametrize("reply", ["no json here", "[1, 2, 3]", "{not valid}"])
    def test_unparseable_raises(self, reply):
        with pytest.raises(AIResponseParseError):
            extract_json_object(reply)


class TestSanitize:
    """Tests for schema validation of model output."""

    def test_valid_output(self):
        result = sanitize(json.loads(STARBUCKS_REPLY))

        assert result.amount == Decimal("420.0")
        assert result.date == "2025-12-11"
        assert result.category == "Food & Dining"
        assert result.confidence == 0.95
        assert result.failed is False

    def test_negative_amount_made_absolute(self):
        assert sanitize({"amount": -420.5}).amount == Decimal("420.5")

    @pytest.mark.parametrize("amount", ["420", True, None, float("nan"), float("inf")])
    def test_non_numeric_or_non_finite_amount_dropped(self, amount):
        assert sanitize({"amount": amount}).amount is None

    @pytest.mark.parametrize("confidence", [1.5, -0.1, "0.9", None, True])
    def test_out_of_contract_confidence_defaults(self, confidence):
        assert sanitize({"confidence": confidence}).confidence == DEFAULT_MODEL_CONFIDENCE

    @pytest.mark.parametrize("confidence", [0, 0.0, 1, 0.42])
    def test_in_range_confidence_kept(self, confidence):
        assert sanitize({"confidence": confidence}).confidence == float(confidence)

    def test_description_truncated(self):
        assert len(sanitize({"description": "x" * 400}).description) == 255

    def test_category_passed_through_unvalidated(self):
        assert sanitize({"category": "food & dining"}).category == "food & dining"


class TestExtract:
    """Tests for the full adapter call."""

    @pytest.mark.asyncio
    async def test_success(self):
        client = mock_client(STARBUCKS_REPLY)
        extractor = BedrockExtractor(settings=configured_settings(), client=client)

        result = await extractor.extract("STARBUCKS COFFEE MUMBAI 11 Dec 2025 -420.00")

        assert result.amount == Decimal("420.0")
        assert result.reasoning == "Coffee shop transaction"
        assert extractor.call_count == 1

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "global.anthropic.claude-sonnet-4-5-20250929-v1:0"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 1000
        assert "STARBUCKS COFFEE MUMBAI" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_fenced_reply(self):
        client = mock_client(f"```json\n{STARBUCKS_REPLY}\n```")
        extractor = BedrockExtractor(settings=configured_settings(), client=client)

        result = await extractor.extract("text")

        assert result.failed is False
        assert result.category == "Food & Dining"

    @pytest.mark.asyncio
    async def test_transport_failure_degrades(self):
        client = mock_client(side_effect=RuntimeError("connection reset"))
        extractor = BedrockExtractor(settings=configured_settings(), client=client)

        result = await extractor.extract("text")

        assert result.failed is True
        assert result.confidence == 0
        assert result.amount is None
        assert result.description is None
        assert result.reasoning == "Extraction failed: connection reset"

    @pytest.mark.asyncio
    async def test_unparseable_reply_degrades(self):
        client = mock_client("I cannot help with that.")
        extractor = BedrockExtractor(settings=configured_settings(), client=client)

        result = await extractor.extract("text")

        assert result.failed is True
        assert result.reasoning.startswith("Extraction failed:")
