"""Donation DApp: composition root wiring session, submitter, ledger and view.

Invariants:
    - One WalletSessionManager per DonationDapp; every other component reads its session
    - The view's ON_CHAIN pipeline reads through the LedgerReader, MIRROR through the MirrorClient
    - donate() returns the terminal PendingSubmission; a confirmed one triggers the
      read-after-write refresh of the on-chain pipeline
    - The read-after-write baseline is the contract count taken before submitting

Design Decisions:
    - Explicit constructor wiring over a DI container (ADR: ExMA no convention-over-config)
    - Read-only ledger override uses a JsonRpcTransport to settings.rpc_url, built lazily
"""

import asyncio
import logging

from donatechain.config import Settings
from donatechain.core.boundary_protocols import WalletTransport
from donatechain.core.domain_types import SourceId, SubmissionState
from donatechain.core.errors import DonateChainError, ProviderUnavailableError
from donatechain.core.fetch_state import Loaded
from donatechain.core.records import DonationRecord
from donatechain.core.submission import PendingSubmission
from donatechain.infrastructure.jsonrpc_transport import JsonRpcTransport
from donatechain.infrastructure.mirror_client import MirrorClient
from donatechain.infrastructure.provider_adapter import ProviderAdapter, detect_provider
from donatechain.services.donation_submitter import DonationSubmitter
from donatechain.services.ledger_reader import LedgerOverride, LedgerReader
from donatechain.services.reconciliation_view import ReconciliationView
from donatechain.services.wallet_session_manager import WalletSessionManager

logger = logging.getLogger(__name__)


class DonationDapp:
    """Owns the component graph and its background event task."""

    def __init__(
        self,
        settings: Settings,
        manager: WalletSessionManager,
        submitter: DonationSubmitter,
        ledger: LedgerReader,
        mirror: MirrorClient,
        view: ReconciliationView,
    ):
        self.settings = settings
        self.manager = manager
        self.submitter = submitter
        self.ledger = ledger
        self.mirror = mirror
        self.view = view
        self._events_task: asyncio.Task | None = None
        self._rpc_transport: JsonRpcTransport | None = None

    async def start(self) -> None:
        """Recover any existing authorization and start consuming wallet events."""
        await self.manager.initialize()
        if self._events_task is None:
            self._events_task = asyncio.create_task(self.manager.run_events())
        self.view.select(self.view.active_source)

    async def donate(self, amount_eth: str, message: str = "") -> PendingSubmission:
        baseline = await self._ledger_baseline()
        pending = self.submitter.submit(amount_eth, message)
        await pending.wait()
        if pending.state is SubmissionState.CONFIRMED:
            await self.view.refresh_after_donation(baseline)
        return pending

    async def _ledger_baseline(self) -> int | None:
        """Contract donation count before submitting; the loaded count if that read fails."""
        try:
            return await self.ledger.donation_count()
        except DonateChainError as e:
            logger.warning(f"Pre-donation count unavailable: {e.message}",
                extra={"source": SourceId.ON_CHAIN.value, "error_code": e.code})
        state = self.view.state(SourceId.ON_CHAIN)
        return len(state.records) if isinstance(state, Loaded) else None

    async def inspect_ledger(self, contract_address: str) -> tuple[DonationRecord, ...]:
        """Read any contract over the configured RPC node, regardless of wallet network."""
        if self._rpc_transport is None:
            self._rpc_transport = JsonRpcTransport(
                self.settings.rpc_url,
                timeout_seconds=self.settings.rpc_timeout_seconds,
                max_retries=self.settings.rpc_max_retries,
                base_delay_ms=self.settings.rpc_base_delay_ms,
                max_delay_ms=self.settings.rpc_max_delay_ms,
            )
        override = LedgerOverride(contract_address, ProviderAdapter(self._rpc_transport))
        return await self.ledger.list_donations(override)

    async def aclose(self) -> None:
        if self._events_task is not None:
            self._events_task.cancel()
            try:
                await self._events_task
            except asyncio.CancelledError:
                pass
            self._events_task = None
        self.manager.close()
        await self.submitter.drain()
        await self.mirror.aclose()
        if self._rpc_transport is not None:
            await self._rpc_transport.aclose()


def build_dapp(
    transport: WalletTransport | None,
    settings: Settings,
    mirror: MirrorClient | None = None,
) -> DonationDapp:
    """Wire every component from settings. A missing transport yields a fatal ERROR session."""
    try:
        adapter: ProviderAdapter | None = detect_provider(transport)
    except ProviderUnavailableError:
        logger.warning("No wallet provider detected")
        adapter = None

    manager = WalletSessionManager(
        adapter,
        settings.chain_spec(),
        receipt_poll_interval_seconds=settings.receipt_poll_interval_seconds,
    )
    submitter = DonationSubmitter(
        manager,
        settings.contract_address,
        confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
    )
    ledger = LedgerReader(manager, settings.contract_address)
    mirror = mirror or MirrorClient(
        settings.mirror_base_url,
        timeout_seconds=settings.mirror_timeout_seconds,
        max_retries=settings.mirror_max_retries,
        base_delay_ms=settings.mirror_base_delay_ms,
        max_delay_ms=settings.mirror_max_delay_ms,
    )
    view = ReconciliationView(
        {SourceId.MIRROR: mirror.list_donations, SourceId.ON_CHAIN: ledger.list_donations},
        active_source=SourceId.MIRROR,
        read_after_write_attempts=settings.read_after_write_attempts,
        read_after_write_interval_seconds=settings.read_after_write_interval_seconds,
    )
    return DonationDapp(settings, manager, submitter, ledger, mirror, view)
