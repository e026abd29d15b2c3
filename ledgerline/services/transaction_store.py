"""
Transaction persistence and cursor pagination.

Every read is filtered by organization. The store trusts the organization id
it is handed; membership must be checked by the caller beforehand.
"""
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Union

import structlog
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledgerline.exceptions import DatabaseError, InvalidCursorError, ValidationError
from ledgerline.extraction.models import ParsedTransaction
from ledgerline.models.transaction import Transaction
from ledgerline.models.types import parse_uuid, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100

IdLike = Union[str, uuid.UUID]


@dataclass
class TransactionPage:
    """One page of a newest-first listing."""
    items: List[Transaction] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False

    @property
    def count(self) -> int:
        return len(self.items)


class TransactionStore:
    """Organization-scoped access to persisted transactions."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        text: str,
        parsed: ParsedTransaction,
        organization_id: IdLike,
        user_id: IdLike,
    ) -> Transaction:
        """
        Persist an extraction result with its raw text.

        Identical submissions create distinct records.
        """
        now = utcnow()
        transaction = Transaction(
            id=uuid.uuid4(),
            text=text,
            amount=parsed.amount,
            date=parsed.date,
            description=parsed.description,
            category=parsed.category,
            confidence=parsed.confidence,
            reasoning=parsed.reasoning,
            organization_id=parse_uuid(organization_id),
            user_id=parse_uuid(user_id),
            created_at=now,
            updated_at=now,
        )

        try:
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("transaction_create_failed", error=str(e))
            raise DatabaseError(details={"operation": "create_transaction"})

        logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            organization_id=str(transaction.organization_id),
            confidence=transaction.confidence,
        )
        return transaction

    def get(self, transaction_id: IdLike, organization_id: IdLike) -> Optional[Transaction]:
        """
        Fetch one transaction of an organization.

        A record of another organization is indistinguishable from a missing one.
        """
        txn_uuid = parse_uuid(transaction_id)
        org_uuid = parse_uuid(organization_id)
        if txn_uuid is None or org_uuid is None:
            return None

        return (
            self.db.query(Transaction)
            .filter(Transaction.id == txn_uuid, Transaction.organization_id == org_uuid)
            .first()
        )

    def list(
        self,
        organization_id: IdLike,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: Optional[str] = None,
    ) -> TransactionPage:
        """
        List an organization's transactions newest first.

        Args:
            organization_id: Organization to list.
            limit: Page size, 1 to 100.
            cursor: Id of the last record of the previous page.

        Returns:
            TransactionPage; ``next_cursor`` is set only when more records exist.

        Raises:
            ValidationError: If limit is out of range.
            InvalidCursorError: If the cursor names no record of this organization.
        """
        if not isinstance(limit, int) or not MIN_PAGE_SIZE <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"limit must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}",
                details={"limit": limit},
            )

        org_uuid = parse_uuid(organization_id)
        if org_uuid is None:
            return TransactionPage()

        query = self.db.query(Transaction).filter(Transaction.organization_id == org_uuid)

        if cursor:
            anchor = self.get(cursor, org_uuid)
            if anchor is None:
                raise InvalidCursorError(cursor)
            query = query.filter(
                or_(
                    Transaction.created_at < anchor.created_at,
                    and_(Transaction.created_at == anchor.created_at, Transaction.id < anchor.id),
                )
            )

        # Over-fetch by one to learn whether another page exists
        rows = (
            query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit + 1)
            .all()
        )

        has_more = len(rows) > limit
        items = rows[:limit]
        next_cursor = str(items[-1].id) if has_more else None

        return TransactionPage(items=items, next_cursor=next_cursor, has_more=has_more)
