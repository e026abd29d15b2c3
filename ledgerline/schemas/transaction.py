"""
Pydantic schemas for transaction API endpoints.

Transaction payloads use camelCase field names on the wire.
"""
from datetime import date as calendar_date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ledgerline.extraction.models import confidence_label
from ledgerline.models.transaction import Transaction


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractTransactionRequest(CamelModel):
    """Raw statement text to extract, and the organization to file it under."""

    text: str = Field(..., description="Raw bank statement text")
    organization_id: str = Field(..., min_length=1, description="Target organization")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text must not be blank")
        return v


class TransactionResponse(CamelModel):
    """Persisted transaction."""

    id: str
    text: str
    amount: Optional[float] = Field(None, description="Absolute amount, never negative")
    date: Optional[calendar_date] = None
    description: Optional[str] = None
    category: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    confidence_label: str = Field(..., description="High, Medium or Low")
    reasoning: Optional[str] = Field(None, description="AI explanation, or the failure marker of a degraded AI extraction")
    organization_id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionResponse":
        return cls(
            id=str(txn.id),
            text=txn.text,
            amount=float(txn.amount) if txn.amount is not None else None,
            date=txn.date,
            description=txn.description,
            category=txn.category,
            confidence=txn.confidence,
            confidence_label=confidence_label(txn.confidence),
            reasoning=txn.reasoning,
            organization_id=str(txn.organization_id),
            user_id=str(txn.user_id),
            created_at=txn.created_at,
            updated_at=txn.updated_at,
        )


class TransactionListResponse(CamelModel):
    """One page of transactions, newest first."""

    items: List[TransactionResponse]
    next_cursor: Optional[str] = None
    has_more: bool
    count: int
