"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, so test fakes need no base class
    - WalletTransport mirrors the EIP-1193 surface (request + on/removeListener): any
      injected wallet bridge or JSON-RPC node can stand behind it unchanged
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from donatechain.core.records import DonationRecord


class TransportError(Exception):
    """Error object returned by a transport request (EIP-1193 ProviderRpcError).

    code is None when the request never reached the wallet/node (network failure).
    """

    def __init__(self, message: str, code: int | None = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data


class WalletTransport(Protocol):
    """EIP-1193 style wallet bridge."""

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any: ...

    def on(self, event: str, listener: Callable[..., Any]) -> None: ...

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> None: ...


class TransactionSigner(Protocol):
    """Capability to sign, broadcast and track one transaction."""

    async def send_transaction(self, tx: dict) -> str: ...

    async def wait_for_receipt(self, tx_hash: str, timeout_seconds: float) -> dict: ...


class MirrorSource(Protocol):
    """Contract for the off-chain ledger mirror: implemented by shell."""

    async def list_donations(self) -> tuple[DonationRecord, ...]: ...


# A zero-argument coroutine factory producing one source's full record list.
RecordFetcher = Callable[[], Awaitable[Sequence[DonationRecord]]]
