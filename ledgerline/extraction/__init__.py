"""
Ledgerline extraction pipeline - bank statement text to structured transactions.

Two strategies produce the same ParsedTransaction contract:
1. AI extraction via Claude on AWS Bedrock, when credentials are configured
2. Rule-based extraction over normalized text, always available

The orchestrator runs exactly one of them and guarantees the result is
well-formed, with a confidence score in [0, 1].
"""

from ledgerline.extraction.models import (
    ExtractionOutcome,
    ParsedTransaction,
    TransactionCategory,
    confidence_label,
)
from ledgerline.extraction.orchestrator import (
    TransactionExtractionService,
    get_extraction_service,
)
from ledgerline.extraction.regex_parser import parse_with_regex

__all__ = [
    "ExtractionOutcome",
    "ParsedTransaction",
    "TransactionCategory",
    "confidence_label",
    "TransactionExtractionService",
    "get_extraction_service",
    "parse_with_regex",
]
