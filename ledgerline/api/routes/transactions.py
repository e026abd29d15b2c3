"""
Transaction API routes.

Extraction from raw statement text, and organization-scoped reads. Every
endpoint checks organization membership before touching the store.
"""
import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ledgerline.auth.dependencies import get_current_active_user
from ledgerline.database import get_db
from ledgerline.exceptions import TransactionNotFoundError
from ledgerline.extraction.orchestrator import get_extraction_service
from ledgerline.middleware.rate_limit import extraction_rate_limit
from ledgerline.models.user import User
from ledgerline.schemas.transaction import (
    ExtractTransactionRequest,
    TransactionListResponse,
    TransactionResponse,
)
from ledgerline.services.organization_service import require_membership
from ledgerline.services.transaction_store import DEFAULT_PAGE_SIZE, TransactionStore

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/extract",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Extract transaction",
    description="Parse raw bank statement text into a transaction and store it.",
)
@extraction_rate_limit()
async def extract_transaction(
    request: Request,
    payload: ExtractTransactionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TransactionResponse:
    """
    Extract a transaction from statement text.

    The result is stored even when nothing could be extracted; callers
    judge it by its confidence.
    """
    require_membership(db, current_user, payload.organization_id)

    parsed = await get_extraction_service().parse_transaction_text(payload.text)

    txn = TransactionStore(db).create(
        text=payload.text,
        parsed=parsed,
        organization_id=payload.organization_id,
        user_id=current_user.id,
    )

    logger.info(
        "transaction_extracted",
        transaction_id=str(txn.id),
        organization_id=payload.organization_id,
        user_id=str(current_user.id),
        confidence=txn.confidence,
    )

    return TransactionResponse.from_model(txn)


@router.get(
    "",
    response_model=TransactionListResponse,
    summary="List transactions",
    description="Cursor-paginated transactions of an organization, newest first.",
)
async def list_transactions(
    organization_id: str = Query(..., alias="organizationId", min_length=1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    cursor: str = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TransactionListResponse:
    """List transactions of one organization."""
    require_membership(db, current_user, organization_id)

    page = TransactionStore(db).list(organization_id, limit=limit, cursor=cursor)

    return TransactionListResponse(
        items=[TransactionResponse.from_model(txn) for txn in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
        count=page.count,
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get transaction",
    description="Get one transaction of an organization.",
)
async def get_transaction(
    transaction_id: str,
    organization_id: str = Query(..., alias="organizationId", min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TransactionResponse:
    """Get transaction by ID within an organization."""
    require_membership(db, current_user, organization_id)

    txn = TransactionStore(db).get(transaction_id, organization_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    return TransactionResponse.from_model(txn)
