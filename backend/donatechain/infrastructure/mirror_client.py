"""Ledger Mirror Client: resilient httpx client for the off-chain donation mirror.

Invariants:
    - Transient errors (connection, 429, 5xx): max N retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - success:false, exhausted retries, non-2xx -> MirrorUnavailableError (recoverable)
    - Body that fails schema validation or record normalization -> MirrorPayloadError
    - Only data.transactions is consumed; summary is informational

Design Decisions:
    - Wrapper over raw httpx.AsyncClient: isolates retry logic from the reconciliation view
    - Pydantic schemas shared with the mirror routes (schemas/transactions.py)
    - Records normalized here so the view only ever sees DonationRecord tuples
"""

import asyncio
import logging

import httpx
from pydantic import ValidationError as PydanticValidationError

from donatechain.core.errors import (
    ErrorContext, MirrorPayloadError, MirrorUnavailableError, ResourceNotFoundError,
)
from donatechain.core.domain_types import SourceId
from donatechain.core.records import DonationRecord, record_from_mirror
from donatechain.infrastructure.backoff import backoff_ms, is_transient_status, retry_after_ms
from donatechain.schemas.transactions import (
    MirrorTransaction, TransactionDetailResponse, TransactionListResponse,
)

logger = logging.getLogger(__name__)


class MirrorClient:
    """Reads donation records from the ledger mirror service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        base_delay_ms: int = 300,
        max_delay_ms: int = 5_000,
        client: httpx.AsyncClient | None = None,
    ):
        self.client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def list_transactions(self) -> list[MirrorTransaction]:
        response = await self._get("/transactions")
        body = self._parse(response, TransactionListResponse)
        if not body.success:
            raise MirrorUnavailableError(
                body.error or body.message or "service reported failure",
                status_code=response.status_code,
                context=self._context(),
            )
        if body.data is None:
            raise MirrorPayloadError("success response without data")
        return body.data.transactions

    async def list_donations(self) -> tuple[DonationRecord, ...]:
        """Mirror transactions normalized to DonationRecord, in service order."""
        transactions = await self.list_transactions()
        records = tuple(
            record_from_mirror(
                position,
                external_id=tx.id,
                donor=tx.donor,
                amount=tx.amount,
                message=tx.message,
                timestamp=tx.timestamp,
                tx_hash=tx.tx_hash,
                currency=tx.currency,
            )
            for position, tx in enumerate(transactions, start=1)
        )
        logger.info(
            "Mirror donations loaded",
            extra={"source": SourceId.MIRROR.value, "count": len(records)},
        )
        return records

    async def get_transaction(self, transaction_id: int) -> MirrorTransaction:
        response = await self._get(
            f"/transactions/{transaction_id}", allow_not_found=True,
        )
        if response.status_code == 404:
            raise ResourceNotFoundError("Transaction", str(transaction_id))
        body = self._parse(response, TransactionDetailResponse)
        if not body.success or body.data is None:
            raise MirrorUnavailableError(
                body.error or "service reported failure",
                status_code=response.status_code,
            )
        return body.data

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "MirrorClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Internals ------------------------------------------------------------

    async def _get(self, path: str, allow_not_found: bool = False) -> httpx.Response:
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(path)
            except httpx.TransportError as e:
                await self._handle_transient(f"{type(e).__name__}: {e}", attempt, None)
                continue

            if is_transient_status(response.status_code):
                await self._handle_transient(
                    f"HTTP {response.status_code}", attempt, response,
                )
                continue
            if response.status_code == 404 and allow_not_found:
                return response
            if response.status_code >= 400:
                raise MirrorUnavailableError(
                    f"HTTP {response.status_code} from {path}",
                    status_code=response.status_code,
                    context=self._context(),
                )
            return response
        raise MirrorUnavailableError(f"no response from {path}")

    async def _handle_transient(
        self, reason: str, attempt: int, response: httpx.Response | None,
    ) -> None:
        """Sleep before the next attempt, or raise once retries are exhausted."""
        if attempt >= self.max_retries:
            raise MirrorUnavailableError(
                f"{reason} after {self.max_retries} retries",
                status_code=response.status_code if response is not None else None,
                context=self._context(),
            )
        delay = None
        if response is not None:
            delay = retry_after_ms(response.headers)
        delay = delay or backoff_ms(attempt, self.base_delay_ms, self.max_delay_ms)
        logger.warning(
            f"Mirror request failed ({reason}), retry after {delay}ms",
            extra={"attempt": attempt + 1, "source": SourceId.MIRROR.value},
        )
        await asyncio.sleep(delay / 1000)

    @staticmethod
    def _parse(response: httpx.Response, schema):
        try:
            return schema.model_validate(response.json())
        except ValueError as e:
            # PydanticValidationError subclasses ValueError; so does JSONDecodeError.
            detail = e.errors()[0]["msg"] if isinstance(e, PydanticValidationError) else str(e)
            raise MirrorPayloadError(detail) from e

    @staticmethod
    def _context() -> ErrorContext:
        return ErrorContext(source=SourceId.MIRROR.value)
