"""Provider Adapter: typed wrapper over an EIP-1193 wallet transport.

Invariants:
    - Every transport failure is mapped into core/errors.py before leaving this module
    - 4001 -> UserRejectedError, -32002 -> RequestPendingError (never conflated)
    - 4902 on chain switch -> SwitchResult.NOT_ADDED (also when nested in data.originalError)
    - Pushed accountsChanged/chainChanged payloads become core session events on a queue;
      listeners never raise into the transport
    - The signer re-reads the session before every send and refuses unless CONNECTED

Design Decisions:
    - No side effects beyond delegating to the transport (ADR: adapter stays a thin shell)
    - Signer bound to a session reader callable, not a snapshot: a push event may
      invalidate the session between get_signer() and send_transaction()
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from donatechain.core.boundary_protocols import TransportError, WalletTransport
from donatechain.core.domain_types import Address, ChainSpec, SessionStatus, SwitchResult
from donatechain.core.errors import (
    ConfirmationTimeoutError, DonateChainError, ErrorCategory, ErrorInfo,
    NotConnectedError, ProviderRequestError, ProviderUnavailableError,
    RequestPendingError, UserRejectedError, WrongNetworkError,
)
from donatechain.core.session_state import (
    AccountsChanged, ChainChanged, SessionEvent, SessionFaulted, WalletSession,
)

logger = logging.getLogger(__name__)

RPC_USER_REJECTED = 4001
RPC_UNRECOGNIZED_CHAIN = 4902
RPC_REQUEST_PENDING = -32002


def parse_quantity(value: Any) -> int:
    """Parse a JSON-RPC quantity (hex string or int) into int."""
    if isinstance(value, bool):
        raise ValueError(f"not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"not a quantity: {value!r}")


def _nested_code(error: TransportError) -> int | None:
    """Some wallets wrap the real code in data.originalError.code."""
    data = error.data
    if isinstance(data, dict):
        original = data.get("originalError")
        if isinstance(original, dict):
            code = original.get("code")
            if isinstance(code, int):
                return code
    return None


class ProviderAdapter:
    """Account/network queries and transaction plumbing over one wallet transport."""

    def __init__(self, transport: WalletTransport):
        self.transport = transport

    # --- Account & network ----------------------------------------------------

    async def get_accounts(self) -> list[Address]:
        accounts = await self._request("eth_accounts")
        return [Address(a) for a in (accounts or [])]

    async def request_accounts(self) -> list[Address]:
        """Prompts the user; suspends until they approve or reject."""
        accounts = await self._request("eth_requestAccounts")
        return [Address(a) for a in (accounts or [])]

    async def get_chain_id(self) -> int:
        raw = await self._request("eth_chainId")
        try:
            return parse_quantity(raw)
        except ValueError as e:
            raise ProviderRequestError("eth_chainId", str(e)) from e

    async def request_chain_switch(self, target_chain_id: int) -> SwitchResult:
        method = "wallet_switchEthereumChain"
        try:
            await self._raw_request(method, [{"chainId": hex(target_chain_id)}])
        except TransportError as e:
            if RPC_UNRECOGNIZED_CHAIN in (e.code, _nested_code(e)):
                return SwitchResult.NOT_ADDED
            mapped = self._map_error(method, e)
            if isinstance(mapped, UserRejectedError):
                return SwitchResult.REJECTED
            raise mapped from e
        return SwitchResult.SUCCESS

    async def add_chain(self, chain_spec: ChainSpec) -> SwitchResult:
        try:
            await self._request("wallet_addEthereumChain", [chain_spec.to_wallet_params()])
        except UserRejectedError:
            return SwitchResult.REJECTED
        return SwitchResult.SUCCESS

    async def get_balance(self, address: str) -> int:
        raw = await self._request("eth_getBalance", [address, "latest"])
        return parse_quantity(raw)

    # --- Contract plumbing ----------------------------------------------------

    async def call(self, to: str, data: str) -> str:
        """eth_call against latest state; returns hex return data."""
        return await self._request("eth_call", [{"to": to, "data": data}, "latest"])

    async def get_code(self, address: str) -> str:
        return await self._request("eth_getCode", [address, "latest"])

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        return await self._request("eth_getTransactionReceipt", [tx_hash])

    async def send_transaction(self, tx: dict) -> str:
        """Unguarded eth_sendTransaction; callers go through get_signer()."""
        return await self._request("eth_sendTransaction", [tx])

    def get_signer(
        self,
        read_session: Callable[[], WalletSession],
        required_chain_id: int,
        poll_interval_seconds: float = 2.0,
    ) -> "SessionBoundSigner":
        return SessionBoundSigner(
            self, read_session, required_chain_id, poll_interval_seconds,
        )

    # --- Push events ----------------------------------------------------------

    def subscribe(self, queue: "asyncio.Queue[SessionEvent]") -> Callable[[], None]:
        """Forward accountsChanged/chainChanged onto queue. Returns an unsubscribe hook."""

        def on_accounts(accounts: Any = None) -> None:
            try:
                event: SessionEvent = AccountsChanged(
                    tuple(Address(str(a)) for a in (accounts or [])),
                )
            except Exception as e:
                event = _malformed_event("accountsChanged", e)
            queue.put_nowait(event)

        def on_chain(chain_id: Any = None) -> None:
            try:
                event: SessionEvent = ChainChanged(parse_quantity(chain_id))
            except Exception as e:
                event = _malformed_event("chainChanged", e)
            queue.put_nowait(event)

        self.transport.on("accountsChanged", on_accounts)
        self.transport.on("chainChanged", on_chain)

        def unsubscribe() -> None:
            self.transport.remove_listener("accountsChanged", on_accounts)
            self.transport.remove_listener("chainChanged", on_chain)

        return unsubscribe

    # --- Internals ------------------------------------------------------------

    async def _request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        try:
            return await self._raw_request(method, params)
        except TransportError as e:
            raise self._map_error(method, e) from e

    async def _raw_request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        try:
            return await self.transport.request(method, list(params or []))
        except (TransportError, DonateChainError):
            raise
        except Exception as e:
            logger.error(f"Unexpected transport error on {method}: {e}", exc_info=True)
            raise ProviderRequestError(method, str(e)) from e

    @staticmethod
    def _map_error(method: str, e: TransportError) -> DonateChainError:
        if e.code == RPC_USER_REJECTED:
            return UserRejectedError(method)
        if e.code == RPC_REQUEST_PENDING:
            return RequestPendingError(method)
        return ProviderRequestError(method, e.message, rpc_code=e.code)


def _malformed_event(name: str, e: Exception) -> SessionFaulted:
    logger.warning(f"Malformed {name} payload: {e}")
    return SessionFaulted(ErrorInfo(
        code="MALFORMED_PROVIDER_EVENT",
        message=f"Wallet sent an unreadable {name} event",
        category=ErrorCategory.PROVIDER,
        retryable=True,
    ))


class SessionBoundSigner:
    """Signs and broadcasts through the wallet, only while the session is CONNECTED."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        read_session: Callable[[], WalletSession],
        required_chain_id: int,
        poll_interval_seconds: float = 2.0,
    ):
        self.adapter = adapter
        self.read_session = read_session
        self.required_chain_id = required_chain_id
        self.poll_interval_seconds = poll_interval_seconds

    def ensure_usable(self) -> WalletSession:
        session = self.read_session()
        if session.can_sign:
            return session
        if session.status is SessionStatus.WRONG_NETWORK:
            raise WrongNetworkError(self.required_chain_id, session.chain_id)
        raise NotConnectedError()

    async def send_transaction(self, tx: dict) -> str:
        """Prompts for a signature and broadcasts. Returns the tx hash."""
        session = self.ensure_usable()
        payload = {"from": session.account, **tx}
        return await self.adapter.send_transaction(payload)

    async def wait_for_receipt(self, tx_hash: str, timeout_seconds: float) -> dict:
        try:
            return await asyncio.wait_for(self._poll_receipt(tx_hash), timeout_seconds)
        except asyncio.TimeoutError:
            raise ConfirmationTimeoutError(tx_hash, timeout_seconds)

    async def _poll_receipt(self, tx_hash: str) -> dict:
        while True:
            receipt = await self.adapter.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            await asyncio.sleep(self.poll_interval_seconds)


def detect_provider(transport: WalletTransport | None) -> ProviderAdapter:
    """Wrap an injected transport, or raise ProviderUnavailableError if there is none."""
    if transport is None or not callable(getattr(transport, "request", None)):
        raise ProviderUnavailableError()
    return ProviderAdapter(transport)
