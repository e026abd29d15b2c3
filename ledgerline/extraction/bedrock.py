"""
AI extraction adapter backed by Claude on AWS Bedrock.

Sends the raw statement text with a fixed instruction contract, pulls a JSON
object out of the (possibly prose- or markdown-wrapped) reply and sanitizes
every field. Any failure while calling the model or reading its reply is
turned into a degraded result; ``extract`` never raises. The call deadline is
enforced by the orchestrator, which cancels a call that runs over it.
"""
import json
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import structlog
from anthropic import AsyncAnthropicBedrock

from ledgerline.config import Settings, get_settings
from ledgerline.exceptions import AIResponseParseError
from ledgerline.extraction.models import (
    MAX_DESCRIPTION_LENGTH,
    TransactionCategory,
    degraded_reasoning,
)

logger = structlog.get_logger(__name__)

# Used when the model reports a confidence outside the [0, 1] contract
DEFAULT_MODEL_CONFIDENCE = 0.5

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
BRACED_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

_CATEGORY_LIST = ", ".join(f'"{c.value}"' for c in TransactionCategory)

PROMPT_TEMPLATE = """You are a financial transaction parser for Indian bank statements. Extract transaction details from the following bank statement text and return ONLY a valid JSON object with no additional text or markdown.

Bank Statement Text:
{text}

Extract the following information:
1. amount (number, always as positive value, null if not found)
   - Recognize Indian Rupee (₹, Rs, INR, Rs.)
   - Handle Indian number formats with commas (e.g., ₹1,00,000.00)
   - Extract only the absolute value (e.g., -420.00 should be extracted as 420.00)
   - Remove any negative signs or debit indicators
2. date (ISO 8601 format YYYY-MM-DD, null if not found)
   - Support DD/MM/YYYY, DD-MM-YYYY formats common in India
   - Support "DD Mon YYYY" format (e.g., 11 Dec 2025)
3. description (merchant or transaction description, max {max_description} chars, null if not found)
4. category (one of: {categories}, null if uncertain)
5. confidence (number between 0 and 1 indicating extraction confidence)
6. reasoning (brief explanation of categorization)

Categories guidelines:
- Food & Dining: restaurants, cafes, coffee shops, food delivery, swiggy, zomato
- Shopping: retail stores, online shopping, groceries, flipkart, amazon, myntra
- Transportation: fuel, parking, ride-sharing, public transit, ola, uber, rapido
- Entertainment: movies, streaming, games, events, bookmyshow, netflix, hotstar
- Utilities: electricity, water, internet, phone bills, airtel, jio, bsnl
- Healthcare: pharmacies, hospitals, medical services, apollo, fortis
- Transfer: peer-to-peer payments, bank transfers, UPI, NEFT, IMPS, paytm, phonepe, gpay
- Income: salary, refunds, deposits, credits
- Other: anything that doesn't fit above

Return ONLY valid JSON in this exact format:
{{
  "amount": 420.00,
  "date": "2025-12-11",
  "description": "STARBUCKS COFFEE MUMBAI",
  "category": "Food & Dining",
  "confidence": 0.95,
  "reasoning": "Coffee shop transaction"
}}"""


@dataclass(frozen=True)
class AIExtraction:
    """
    Sanitized model output.

    ``date`` is the model's ISO string; converting it to a calendar date is
    left to the orchestrator.
    """
    amount: Optional[Decimal] = None
    date: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    confidence: float = 0.0
    reasoning: Optional[str] = None
    failed: bool = False

    @classmethod
    def failure(cls, reason: str) -> "AIExtraction":
        return cls(confidence=0.0, reasoning=degraded_reasoning(reason), failed=True)


def build_prompt(text: str) -> str:
    """Fill the extraction instruction contract with the statement text."""
    return PROMPT_TEMPLATE.format(
        text=text,
        max_description=MAX_DESCRIPTION_LENGTH,
        categories=_CATEGORY_LIST,
    )


def extract_json_object(response_text: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model reply.

    Tries, in order: the whole reply, a fenced code block, the first
    brace-delimited span.

    Raises:
        AIResponseParseError: If none of them parses to a JSON object.
    """
    candidates = [response_text]

    fenced = FENCED_JSON_PATTERN.search(response_text)
    if fenced:
        candidates.append(fenced.group(1))

    braced = BRACED_OBJECT_PATTERN.search(response_text)
    if braced:
        candidates.append(braced.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(data, dict):
            return data

    raise AIResponseParseError(details={"response_preview": response_text[:200]})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def sanitize(data: Dict[str, Any]) -> AIExtraction:
    """
    Validate model output against the expected schema.

    - amount: finite numbers only, absolute value
    - description: truncated to 255 characters
    - confidence: numeric within [0, 1], otherwise 0.5
    - category: passed through as given
    """
    amount = data.get("amount")
    if _is_number(amount) and math.isfinite(amount):
        amount = abs(Decimal(str(amount)))
    else:
        amount = None

    description = data.get("description")
    description = description[:MAX_DESCRIPTION_LENGTH] if isinstance(description, str) and description else None

    confidence = data.get("confidence")
    if not (_is_number(confidence) and 0 <= confidence <= 1):
        confidence = DEFAULT_MODEL_CONFIDENCE

    raw_date = data.get("date")
    category = data.get("category")
    reasoning = data.get("reasoning")

    return AIExtraction(
        amount=amount,
        date=raw_date if isinstance(raw_date, str) and raw_date else None,
        description=description,
        category=category if isinstance(category, str) and category else None,
        confidence=float(confidence),
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


class BedrockExtractor:
    """
    Extraction strategy delegating to a Claude model on AWS Bedrock.

    One call per extraction, no retries.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncAnthropicBedrock] = None,
    ):
        """
        Initialize the extractor.

        Args:
            settings: Application settings (defaults to the cached settings).
            client: Pre-built Bedrock client; created lazily when omitted.
        """
        self._settings = settings or get_settings()
        self._client = client
        self._call_count = 0

    def is_configured(self) -> bool:
        """Whether Bedrock region and credentials are all present."""
        return self._settings.bedrock_configured

    def _get_client(self) -> AsyncAnthropicBedrock:
        if self._client is None:
            self._client = AsyncAnthropicBedrock(
                aws_region=self._settings.aws_region,
                aws_access_key=self._settings.aws_access_key_id,
                aws_secret_key=self._settings.aws_secret_access_key,
                max_retries=0,
            )
            logger.info("bedrock_client_initialized", region=self._settings.aws_region)
        return self._client

    async def _invoke(self, prompt: str) -> str:
        client = self._get_client()
        response = await client.messages.create(
            model=self._settings.bedrock_model_id,
            max_tokens=self._settings.ai_max_tokens,
            temperature=self._settings.ai_temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        self._call_count += 1
        return response.content[0].text.strip()

    async def extract(self, text: str) -> AIExtraction:
        """
        Extract transaction fields from raw text with the model.

        Args:
            text: Raw statement text.

        Returns:
            Sanitized AIExtraction; on any failure a result with all fields
            null, confidence 0 and the failure in ``reasoning``.
        """
        try:
            response_text = await self._invoke(build_prompt(text))
            result = sanitize(extract_json_object(response_text))
        except Exception as e:
            logger.error("bedrock_extraction_failed", error=str(e), error_type=type(e).__name__)
            return AIExtraction.failure(str(e) or type(e).__name__)

        logger.info(
            "bedrock_extraction_complete",
            text_length=len(text),
            confidence=result.confidence,
            category=result.category,
        )
        return result

    @property
    def call_count(self) -> int:
        """Get total model calls made."""
        return self._call_count


# Singleton instance
_extractor_instance: Optional[BedrockExtractor] = None


def get_bedrock_extractor() -> BedrockExtractor:
    """Get singleton BedrockExtractor instance."""
    global _extractor_instance
    if _extractor_instance is None:
        _extractor_instance = BedrockExtractor()
    return _extractor_instance
