"""
Transaction model.

A transaction is created once by the extraction pipeline and never mutated.
It keeps the raw statement text verbatim next to the extracted fields.
"""
import uuid

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from ledgerline.database import Base
from ledgerline.models.types import UUID, ExactDecimal, utcnow


class Transaction(Base):
    """Extracted bank-statement transaction, scoped to one organization."""

    __tablename__ = "transactions"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)

    # Raw input, stored verbatim
    text = Column(Text, nullable=False)

    # Extracted fields
    amount = Column(ExactDecimal(), nullable=True)  # always >= 0, never rounded
    date = Column(Date, nullable=True)
    description = Column(String(255), nullable=True)
    category = Column(String(50), nullable=True)
    confidence = Column(Float, default=0.0, nullable=False)  # 0.0 to 1.0
    reasoning = Column(Text, nullable=True)  # AI explanation or failure marker

    # Ownership
    organization_id = Column(UUID(), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="transactions")
    user = relationship("User", backref="transactions")

    __table_args__ = (
        Index("ix_transactions_org_created_id", "organization_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.id} org={self.organization_id} confidence={self.confidence}>"
