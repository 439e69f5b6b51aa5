"""Donation Submitter: validates, signs, broadcasts and confirms one donate() call.

Invariants:
    - submit() returns at VALIDATING; progress happens in a background task
    - Amount, session and contract checks all run before any signing prompt
    - >18 fractional digits -> PrecisionError; WRONG_NETWORK -> WrongNetworkError (local, never remote)
    - Confirmation wait is bounded; expiry -> FAILED with code TIMEOUT and tx_handle kept
    - No exception escapes the background task: every failure ends as FAILED with a cause

Design Decisions:
    - AWAITING_SIGNATURE covers eth_sendTransaction (wallets sign and broadcast in one call);
      BROADCASTING starts when the hash comes back, CONFIRMING while polling the receipt
    - Session re-read from the manager at each stage, never cached across awaits
    - Strong references to running tasks kept in a set (asyncio only holds weak ones)
"""

import asyncio
import logging

from donatechain.core.domain_types import SessionStatus, SubmissionState
from donatechain.core.errors import (
    DonateChainError, ErrorCategory, ErrorInfo, NotConnectedError, ProviderRequestError,
    TransactionRevertedError, ValidationError, WrongNetworkError,
)
from donatechain.core.submission import PendingSubmission
from donatechain.core.units import parse_ether
from donatechain.infrastructure.donation_contract import DonationContract
from donatechain.infrastructure.provider_adapter import parse_quantity
from donatechain.services.wallet_session_manager import WalletSessionManager

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1_000


class DonationSubmitter:
    """Submits donations through the session's signer and tracks them to confirmation."""

    def __init__(
        self,
        manager: WalletSessionManager,
        contract_address: str | None,
        confirmation_timeout_seconds: float = 120.0,
    ):
        self.manager = manager
        self.contract_address = contract_address
        self.confirmation_timeout_seconds = confirmation_timeout_seconds
        self._tasks: set[asyncio.Task] = set()

    def submit(self, amount_eth: str, message: str = "") -> PendingSubmission:
        """Start a donation. Await `PendingSubmission.wait()` for the terminal state."""
        pending = PendingSubmission(amount_eth=amount_eth, message=message or "")
        task = asyncio.create_task(self._run(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return pending

    def validate(self, amount_eth: str, message: str = "") -> int:
        """All local checks; returns the exact wei amount. Raises before any prompt."""
        amount_wei = parse_ether(amount_eth, field="amount")
        if amount_wei <= 0:
            raise ValidationError("Donation amount must be greater than zero", "amount")
        if len(message or "") > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message is limited to {MAX_MESSAGE_LENGTH} characters", "message",
            )

        session = self.manager.session
        if session.status is SessionStatus.WRONG_NETWORK:
            raise WrongNetworkError(self.manager.required_chain_id, session.chain_id)
        if not session.can_sign:
            raise NotConnectedError()

        if not self.contract_address:
            raise ValidationError("Contract address is not configured", "contract_address")
        return amount_wei

    async def _run(self, pending: PendingSubmission) -> None:
        try:
            await self._execute(pending)
        except DonateChainError as e:
            logger.warning(
                f"Donation failed at {pending.state.value}: {e.message}",
                extra={"error_code": e.code, "tx_hash": pending.tx_handle},
            )
            pending.fail(e)
        except asyncio.CancelledError:
            if not pending.is_terminal:
                pending.fail(ErrorInfo(
                    code="CANCELLED",
                    message="Donation tracking was cancelled",
                    category=ErrorCategory.INTERNAL,
                    retryable=True,
                ))
            raise
        except Exception as e:
            logger.error(f"Unexpected donation failure: {e}", exc_info=True,
                extra={"tx_hash": pending.tx_handle})
            pending.fail(e)

    async def _execute(self, pending: PendingSubmission) -> None:
        pending.amount_wei = self.validate(pending.amount_eth, pending.message)
        contract = DonationContract(self.manager.adapter, self.contract_address)
        tx = contract.build_donate_tx(pending.message, pending.amount_wei)
        signer = self.manager.signer()

        pending.advance(SubmissionState.AWAITING_SIGNATURE)
        tx_hash = await signer.send_transaction(tx)

        pending.attach_handle(tx_hash)
        pending.advance(SubmissionState.BROADCASTING)
        logger.info("Donation broadcast", extra={"tx_hash": tx_hash,
            "account": self.manager.session.account})

        pending.advance(SubmissionState.CONFIRMING)
        receipt = await signer.wait_for_receipt(tx_hash, self.confirmation_timeout_seconds)
        if _receipt_failed(receipt):
            raise TransactionRevertedError(tx_hash)

        pending.advance(SubmissionState.CONFIRMED)
        logger.info("Donation confirmed", extra={"tx_hash": tx_hash,
            "state": pending.state.value})

    async def drain(self) -> None:
        """Wait for every in-flight submission task (tests and shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _receipt_failed(receipt: dict) -> bool:
    status = receipt.get("status")
    if status is None:
        return False
    try:
        return parse_quantity(status) == 0
    except ValueError as e:
        raise ProviderRequestError(
            "eth_getTransactionReceipt", f"unreadable receipt status {status!r}",
        ) from e
