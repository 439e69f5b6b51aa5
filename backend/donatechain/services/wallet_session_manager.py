"""Wallet Session Manager: owns the process-wide WalletSession and drives its state machine.

Invariants:
    - The only writer of WalletSession; everyone else reads `session` (an immutable snapshot)
    - connect() while CONNECTING raises AlreadyInProgressError and never opens a second prompt
    - Push events are authoritative: account/chain observed while connect() is suspended
      override what connect() read, and an empty-accounts event cancels the connect result
    - Wrong chain after connect -> WRONG_NETWORK plus exactly one automatic switch attempt
      (with a single addChain fallback); fallback failure stays WRONG_NETWORK, never ERROR
    - Event handlers never raise; internal faults degrade to ERROR with last_error set
    - disconnect() is a UI-level reset: the wallet's authorization is NOT revoked

Design Decisions:
    - State changes go through core.session_state.reduce (pure), this class only does IO
    - Inbound event channel is an asyncio.Queue fed by ProviderAdapter.subscribe()
    - Missing provider is a fatal ERROR state (ProviderUnavailable, not retryable), not an exception
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from donatechain.core.domain_types import (
    Address, ChainSpec, SessionStatus, SwitchResult,
)
from donatechain.core.errors import (
    AlreadyInProgressError, DonateChainError, ErrorInfo, NotConnectedError,
    ProviderUnavailableError, UserRejectedError,
)
from donatechain.core.session_state import (
    AccountsChanged, ChainChanged, ConnectFailed, ConnectStarted,
    ConnectSucceeded, DisconnectRequested, NetworkSwitchFailed, SessionEvent,
    ProbeFailed, SessionFaulted, SessionRestored, WalletSession, reduce,
)
from donatechain.infrastructure.provider_adapter import (
    ProviderAdapter, SessionBoundSigner, parse_quantity,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[WalletSession], Any]


class WalletSessionManager:
    """Connection state, account identity, chain identity and network enforcement."""

    def __init__(
        self,
        adapter: ProviderAdapter | None,
        chain_spec: ChainSpec,
        receipt_poll_interval_seconds: float = 2.0,
    ):
        self.adapter = adapter
        self.chain_spec = chain_spec
        self.required_chain_id = chain_spec.chain_id
        self.receipt_poll_interval_seconds = receipt_poll_interval_seconds
        self.events: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._session = WalletSession()
        self._listeners: list[SessionListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        # Push events seen while connect() is suspended (authoritative over connect's reads)
        self._observed_accounts: tuple[Address, ...] | None = None
        self._observed_chain_id: int | None = None

    @property
    def session(self) -> WalletSession:
        return self._session

    # --- Lifecycle ------------------------------------------------------------

    async def initialize(self) -> WalletSession:
        """Probe the transport once at startup to recover an existing authorization."""
        if self.adapter is None:
            return self._dispatch(SessionFaulted(ProviderUnavailableError().to_info()))
        if self._unsubscribe is None:
            self._unsubscribe = self.adapter.subscribe(self.events)
        try:
            accounts = await self.adapter.get_accounts()
            chain_id = await self.adapter.get_chain_id()
        except DonateChainError as e:
            logger.warning(f"Startup wallet probe failed: {e.message}",
                extra={"error_code": e.code})
            return self._dispatch(ProbeFailed(e.to_info()))
        if accounts:
            logger.info("Recovered authorized wallet", extra={"account": accounts[0]})
            return self._dispatch(SessionRestored(accounts[0], chain_id))
        return self._dispatch(ChainChanged(chain_id))

    async def run_events(self) -> None:
        """Drain provider-pushed events until cancelled."""
        while True:
            event = await self.events.get()
            try:
                self.handle_event(event)
            finally:
                self.events.task_done()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # --- User actions ---------------------------------------------------------

    async def connect(self) -> WalletSession:
        """Prompt for accounts, then enforce the required network.

        Raises only AlreadyInProgressError; every other failure lands in
        session.status/last_error.
        """
        if self._session.status is SessionStatus.CONNECTING:
            raise AlreadyInProgressError()

        self._observed_accounts = None
        self._observed_chain_id = None
        self._dispatch(ConnectStarted())

        if self.adapter is None:
            return self._dispatch(ConnectFailed(ProviderUnavailableError().to_info()))

        try:
            accounts = await self.adapter.request_accounts()
            if not accounts:
                raise UserRejectedError("eth_requestAccounts")
            chain_id = await self.adapter.get_chain_id()
        except DonateChainError as e:
            logger.warning(f"Wallet connect failed: {e.message}",
                extra={"error_code": e.code})
            return self._dispatch(ConnectFailed(e.to_info()))
        except Exception as e:
            logger.error(f"Unexpected error during connect: {e}", exc_info=True)
            return self._dispatch(ConnectFailed(ErrorInfo.from_exception(e)))

        if self._session.status is not SessionStatus.CONNECTING:
            # A push event (empty accounts) or disconnect() won while we were suspended.
            logger.info("Connect result dropped: session changed during prompt",
                extra={"status": self._session.status.value})
            return self.session

        if self._observed_accounts:
            accounts = list(self._observed_accounts)
        if self._observed_chain_id is not None:
            chain_id = self._observed_chain_id
        self._dispatch(ConnectSucceeded(accounts[0], chain_id))

        if self._session.status is SessionStatus.WRONG_NETWORK:
            await self.switch_network()
        return self.session

    async def switch_network(self) -> WalletSession:
        """Ask the wallet for the required chain; add it first if the wallet lacks it."""
        if self.adapter is None or not self._session.is_connected:
            return self.session
        try:
            result = await self.adapter.request_chain_switch(self.required_chain_id)
            if result is SwitchResult.NOT_ADDED:
                logger.info("Required chain unknown to wallet, offering addChain",
                    extra={"chain_id": self.required_chain_id})
                added = await self.adapter.add_chain(self.chain_spec)
                if added is SwitchResult.SUCCESS:
                    result = await self.adapter.request_chain_switch(self.required_chain_id)
                else:
                    return self._switch_failed(UserRejectedError("wallet_addEthereumChain").to_info())
            if result is not SwitchResult.SUCCESS:
                return self._switch_failed(
                    UserRejectedError("wallet_switchEthereumChain").to_info(),
                )
            chain_id = await self.adapter.get_chain_id()
        except DonateChainError as e:
            return self._switch_failed(e.to_info())
        except Exception as e:
            logger.error(f"Unexpected error during network switch: {e}", exc_info=True)
            return self._switch_failed(ErrorInfo.from_exception(e))
        return self.handle_event(ChainChanged(chain_id))

    def disconnect(self) -> WalletSession:
        """Local reset only. The wallet keeps its authorization (no revoke capability exists)."""
        logger.info("UI-level disconnect (wallet authorization not revoked)",
            extra={"account": self._session.account})
        return self._dispatch(DisconnectRequested())

    # --- Provider-pushed events -----------------------------------------------

    def handle_accounts_changed(self, accounts: Sequence[Any] | None) -> WalletSession:
        try:
            event: SessionEvent = AccountsChanged(
                tuple(Address(str(a)) for a in (accounts or [])),
            )
        except Exception as e:
            return self._fault(e)
        return self.handle_event(event)

    def handle_chain_changed(self, chain_id: Any) -> WalletSession:
        try:
            event: SessionEvent = ChainChanged(parse_quantity(chain_id))
        except Exception as e:
            return self._fault(e)
        return self.handle_event(event)

    def handle_event(self, event: SessionEvent) -> WalletSession:
        """Apply one pushed event. Idempotent; never raises."""
        try:
            if self._session.status is SessionStatus.CONNECTING:
                if isinstance(event, AccountsChanged) and event.accounts:
                    self._observed_accounts = event.accounts
                elif isinstance(event, ChainChanged):
                    self._observed_chain_id = event.chain_id
            return self._dispatch(event)
        except Exception as e:
            return self._fault(e)

    # --- Observers & capabilities ---------------------------------------------

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def signer(self) -> SessionBoundSigner:
        if self.adapter is None:
            raise ProviderUnavailableError()
        return self.adapter.get_signer(
            lambda: self._session,
            self.required_chain_id,
            self.receipt_poll_interval_seconds,
        )

    async def fetch_balance(self) -> int:
        """Wei balance of the connected account."""
        session = self._session
        if self.adapter is None:
            raise ProviderUnavailableError()
        if not session.is_connected or session.account is None:
            raise NotConnectedError()
        return await self.adapter.get_balance(session.account)

    # --- Internals ------------------------------------------------------------

    def _dispatch(self, event: SessionEvent) -> WalletSession:
        old = self._session
        new = reduce(old, event, self.required_chain_id)
        if new == old:
            return old
        self._session = new
        logger.info(
            f"Wallet session {old.status.value} -> {new.status.value}",
            extra={
                "status": new.status.value,
                "account": new.account,
                "chain_id": new.chain_id,
                "error_code": new.last_error.code if new.last_error else None,
            },
        )
        self._notify(new)
        return new

    def _notify(self, session: WalletSession) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)

    def _switch_failed(self, error: ErrorInfo) -> WalletSession:
        logger.warning(f"Network switch failed: {error.message}",
            extra={"error_code": error.code, "chain_id": self._session.chain_id})
        return self._dispatch(NetworkSwitchFailed(error))

    def _fault(self, e: Exception) -> WalletSession:
        logger.error(f"Wallet event handling failed: {e}", exc_info=True)
        info = ErrorInfo.from_exception(e)
        try:
            return self._dispatch(SessionFaulted(info))
        except Exception:
            self._session = WalletSession(
                chain_id=self._session.chain_id,
                status=SessionStatus.ERROR,
                last_error=info,
            )
            return self._session
