"""Wallet Session State: immutable snapshot plus a pure reducer over session events.

Invariants:
    - account is non-None iff status in {CONNECTED, WRONG_NETWORK}
    - reduce() is pure and total: (old snapshot, event) -> new snapshot, never raises
    - Re-applying the same AccountsChanged/ChainChanged event returns an equal snapshot
    - An empty AccountsChanged forces DISCONNECTED from every state, CONNECTING included
    - Connect results are dropped unless the session is still CONNECTING

Design Decisions:
    - Frozen dataclass snapshots: other components may hold one across awaits without
      it changing underneath them (ADR: re-read the manager, never mutate a snapshot)
    - Events as small frozen dataclasses dispatched with isinstance: no string matching
    - Non-empty AccountsChanged while DISCONNECTED/ERROR is ignored: a UI-level disconnect
      must not be undone by the wallet re-announcing its authorized account
"""

from dataclasses import dataclass, replace

from donatechain.core.domain_types import Address, SessionStatus, same_address
from donatechain.core.errors import ErrorInfo

CONNECTED_STATES = frozenset({SessionStatus.CONNECTED, SessionStatus.WRONG_NETWORK})


@dataclass(frozen=True)
class WalletSession:
    """Current wallet connection: one per process, owned by WalletSessionManager."""

    account: Address | None = None
    chain_id: int | None = None
    status: SessionStatus = SessionStatus.DISCONNECTED
    last_error: ErrorInfo | None = None

    @property
    def is_connected(self) -> bool:
        """Connected super-state (right or wrong network)."""
        return self.status in CONNECTED_STATES

    @property
    def can_sign(self) -> bool:
        return self.status is SessionStatus.CONNECTED


# ─── Events ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ConnectStarted:
    pass


@dataclass(frozen=True)
class ConnectSucceeded:
    account: Address
    chain_id: int


@dataclass(frozen=True)
class ConnectFailed:
    error: ErrorInfo


@dataclass(frozen=True)
class SessionRestored:
    """Startup probe found an already-authorized account."""
    account: Address
    chain_id: int


@dataclass(frozen=True)
class ProbeFailed:
    """Startup probe could not read the wallet; the session stays DISCONNECTED."""
    error: ErrorInfo


@dataclass(frozen=True)
class AccountsChanged:
    accounts: tuple[Address, ...]


@dataclass(frozen=True)
class ChainChanged:
    chain_id: int


@dataclass(frozen=True)
class NetworkSwitchFailed:
    error: ErrorInfo


@dataclass(frozen=True)
class DisconnectRequested:
    pass


@dataclass(frozen=True)
class SessionFaulted:
    error: ErrorInfo


SessionEvent = (
    ConnectStarted | ConnectSucceeded | ConnectFailed | SessionRestored | ProbeFailed
    | AccountsChanged | ChainChanged | NetworkSwitchFailed
    | DisconnectRequested | SessionFaulted
)


# ─── Reducer ─────────────────────────────────────────────────────

def _network_status(chain_id: int | None, required_chain_id: int) -> SessionStatus:
    if chain_id == required_chain_id:
        return SessionStatus.CONNECTED
    return SessionStatus.WRONG_NETWORK


def reduce(
    session: WalletSession, event: SessionEvent, required_chain_id: int,
) -> WalletSession:
    """Apply one event to a session snapshot. Pure, deterministic, no IO."""
    if isinstance(event, DisconnectRequested):
        return WalletSession()

    if isinstance(event, ConnectStarted):
        return WalletSession(
            chain_id=session.chain_id, status=SessionStatus.CONNECTING,
        )

    if isinstance(event, ConnectSucceeded):
        if session.status is not SessionStatus.CONNECTING:
            return session
        return WalletSession(
            account=event.account,
            chain_id=event.chain_id,
            status=_network_status(event.chain_id, required_chain_id),
        )

    if isinstance(event, SessionRestored):
        if session.status is not SessionStatus.DISCONNECTED:
            return session
        return WalletSession(
            account=event.account,
            chain_id=event.chain_id,
            status=_network_status(event.chain_id, required_chain_id),
        )

    if isinstance(event, ConnectFailed):
        if session.status is not SessionStatus.CONNECTING:
            return session
        return WalletSession(
            chain_id=session.chain_id,
            status=SessionStatus.ERROR,
            last_error=event.error,
        )

    if isinstance(event, ProbeFailed):
        if session.status is not SessionStatus.DISCONNECTED:
            return session
        return replace(session, last_error=event.error)

    if isinstance(event, AccountsChanged):
        return _apply_accounts(session, event.accounts)

    if isinstance(event, ChainChanged):
        if session.chain_id == event.chain_id:
            return session
        if session.is_connected:
            return replace(
                session,
                chain_id=event.chain_id,
                status=_network_status(event.chain_id, required_chain_id),
                last_error=None,
            )
        return replace(session, chain_id=event.chain_id)

    if isinstance(event, NetworkSwitchFailed):
        if session.status is not SessionStatus.WRONG_NETWORK:
            return session
        return replace(session, last_error=event.error)

    if isinstance(event, SessionFaulted):
        return WalletSession(
            chain_id=session.chain_id,
            status=SessionStatus.ERROR,
            last_error=event.error,
        )

    return session


def _apply_accounts(
    session: WalletSession, accounts: tuple[Address, ...],
) -> WalletSession:
    if not accounts:
        if session.status is SessionStatus.DISCONNECTED and session.account is None:
            return session
        return WalletSession(chain_id=session.chain_id)

    if not session.is_connected:
        return session

    primary = accounts[0]
    if same_address(session.account, primary):
        return session
    return replace(session, account=primary, last_error=None)
