"""Transactions: read-only ledger mirror endpoints over a fixed donation set.

Invariants:
    - Records are served in ascending id order, never re-sorted per request
    - summary.totalAmount is computed from exact wei sums, rendered with two decimals
    - Unknown or non-integer id -> 404 {success:false, error, id} (never 422)

Design Decisions:
    - Module-level tuple of pydantic models: the mirror has no persistence layer
      (ADR: demo data, state never mutated, safe for multi-worker uvicorn)
    - Response models shared with infrastructure.mirror_client (single wire contract)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from donatechain.core.units import format_ether_fixed, parse_ether
from donatechain.schemas.transactions import (
    MirrorErrorResponse, MirrorTransaction, TransactionDetailResponse,
    TransactionListData, TransactionListResponse, TransactionSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _at(iso: str) -> datetime:
    return datetime.fromisoformat(iso).replace(tzinfo=timezone.utc)


_TRANSACTIONS: tuple[MirrorTransaction, ...] = (
    MirrorTransaction(
        id=1,
        donor="0x742d35Cc6634C0532925a3b844Bc9e7595f8bE21",
        amount="0.5",
        message="Hope this helps those in need",
        timestamp=_at("2026-01-25T10:30:00"),
        tx_hash="0x8a7d56e92f6bc8b6a8f8b6c8d8e8f8a8b8c8d8e8f8a8b8c8d8e8f8a8b8c8d8e8",
    ),
    MirrorTransaction(
        id=2,
        donor="0x892d35Cc6634C0532925a3b844Bc9e7595f8bE32",
        amount="0.25",
        message="A donation for a good cause",
        timestamp=_at("2026-01-26T14:45:00"),
        tx_hash="0x9b8e67f03a7cd9c7b9a9c7d9e9f9b9c9d9e9f9b9c9d9e9f9b9c9d9e9f9b9c9d",
    ),
    MirrorTransaction(
        id=3,
        donor="0x1234567890AbCdEf1234567890AbCdEf12345678",
        amount="1.0",
        message="Best of luck with the project!",
        timestamp=_at("2026-01-27T09:15:00"),
        tx_hash="0xabc123def456abc123def456abc123def456abc123def456abc123def456abc1",
    ),
    MirrorTransaction(
        id=4,
        donor="0xAbCdEf1234567890AbCdEf1234567890AbCdEf12",
        amount="0.1",
        message="Keep building!",
        timestamp=_at("2026-01-28T16:20:00"),
        tx_hash="0xdef789abc012def789abc012def789abc012def789abc012def789abc012def7",
    ),
    MirrorTransaction(
        id=5,
        donor="0x5678901234AbCdEf5678901234AbCdEf56789012",
        amount="0.75",
        message="A small contribution from me",
        timestamp=_at("2026-01-29T08:00:00"),
        tx_hash="0x345abc678def345abc678def345abc678def345abc678def345abc678def3450",
    ),
)


def _summary(transactions: tuple[MirrorTransaction, ...]) -> TransactionSummary:
    total = sum(parse_ether(tx.amount) for tx in transactions)
    return TransactionSummary(
        total_transactions=len(transactions),
        total_amount=format_ether_fixed(total, 2),
        currency="ETH",
    )


def _not_found(transaction_id: str) -> JSONResponse:
    body = MirrorErrorResponse(error="Transaction not found", id=transaction_id)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=body.model_dump(exclude_none=True),
    )


@router.get(
    "",
    response_model=TransactionListResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def list_transactions():
    """All mirrored donations plus an exact summary."""
    logger.info("Serving mirrored transactions", extra={"count": len(_TRANSACTIONS)})
    return TransactionListResponse(
        success=True,
        message="Transactions retrieved",
        data=TransactionListData(
            transactions=list(_TRANSACTIONS),
            summary=_summary(_TRANSACTIONS),
        ),
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionDetailResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    responses={404: {"model": MirrorErrorResponse}},
)
async def get_transaction(transaction_id: str):
    """One mirrored donation by id."""
    try:
        wanted = int(transaction_id)
    except ValueError:
        return _not_found(transaction_id)
    for tx in _TRANSACTIONS:
        if tx.id == wanted:
            return TransactionDetailResponse(
                success=True, message="Transaction found", data=tx,
            )
    return _not_found(transaction_id)
