"""Wallet Session Reducer: pure transitions of the session state machine.

Tests:
    - Connect lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED / WRONG_NETWORK / ERROR
    - Empty accountsChanged forces DISCONNECTED from every state (CONNECTING included)
    - Re-applied events are idempotent
    - Late connect results are dropped once the session left CONNECTING
    - Chain changes move between CONNECTED and WRONG_NETWORK only while connected
    - account is set iff the session is in the connected super-state
    - A failed startup probe records last_error only while DISCONNECTED
"""

import pytest

from donatechain.core.domain_types import Address, SessionStatus
from donatechain.core.errors import ErrorCategory, ErrorInfo
from donatechain.core.session_state import (
    AccountsChanged, ChainChanged, ConnectFailed, ConnectStarted,
    ConnectSucceeded, DisconnectRequested, NetworkSwitchFailed,
    ProbeFailed, SessionFaulted, SessionRestored, WalletSession, reduce,
)

SEPOLIA = 11_155_111
MAINNET = 1
ALICE = Address("0xAbCdEf1234567890AbCdEf1234567890AbCdEf12")
BOB = Address("0x1234567890AbCdEf1234567890AbCdEf12345678")


def _error(code: str = "USER_REJECTED") -> ErrorInfo:
    return ErrorInfo(code=code, message="nope", category=ErrorCategory.USER_ACTION, retryable=True)


def _apply(session: WalletSession, *events) -> WalletSession:
    for event in events:
        session = reduce(session, event, SEPOLIA)
    return session


def _connected(chain_id: int = SEPOLIA) -> WalletSession:
    return _apply(WalletSession(), ConnectStarted(), ConnectSucceeded(ALICE, chain_id))


# ==============================================================================
# Connect lifecycle
# ==============================================================================


def test_initial_session_is_disconnected():
    session = WalletSession()
    assert session.status is SessionStatus.DISCONNECTED
    assert session.account is None
    assert not session.is_connected
    assert not session.can_sign


def test_connect_on_required_chain_is_connected():
    session = _connected()
    assert session.status is SessionStatus.CONNECTED
    assert session.account == ALICE
    assert session.chain_id == SEPOLIA
    assert session.can_sign


def test_connect_on_other_chain_is_wrong_network():
    session = _connected(MAINNET)
    assert session.status is SessionStatus.WRONG_NETWORK
    assert session.is_connected
    assert not session.can_sign


def test_connect_failure_lands_in_error_with_cause():
    session = _apply(WalletSession(), ConnectStarted(), ConnectFailed(_error()))
    assert session.status is SessionStatus.ERROR
    assert session.account is None
    assert session.last_error.code == "USER_REJECTED"


def test_connect_started_clears_previous_error():
    failed = _apply(WalletSession(), ConnectStarted(), ConnectFailed(_error()))
    retry = reduce(failed, ConnectStarted(), SEPOLIA)
    assert retry.status is SessionStatus.CONNECTING
    assert retry.last_error is None


def test_late_connect_result_dropped_after_disconnect():
    session = _apply(
        WalletSession(), ConnectStarted(), DisconnectRequested(),
        ConnectSucceeded(ALICE, SEPOLIA),
    )
    assert session == WalletSession()


def test_late_connect_failure_dropped_when_connected():
    session = reduce(_connected(), ConnectFailed(_error()), SEPOLIA)
    assert session.status is SessionStatus.CONNECTED


def test_session_restored_only_from_disconnected():
    restored = reduce(WalletSession(), SessionRestored(ALICE, SEPOLIA), SEPOLIA)
    assert restored.status is SessionStatus.CONNECTED

    connecting = reduce(WalletSession(), ConnectStarted(), SEPOLIA)
    assert reduce(connecting, SessionRestored(ALICE, SEPOLIA), SEPOLIA) == connecting


# ==============================================================================
# Account events
# ==============================================================================


@pytest.mark.parametrize("start", [
    WalletSession(status=SessionStatus.CONNECTING),
    WalletSession(account=ALICE, chain_id=SEPOLIA, status=SessionStatus.CONNECTED),
    WalletSession(account=ALICE, chain_id=MAINNET, status=SessionStatus.WRONG_NETWORK),
    WalletSession(status=SessionStatus.ERROR, last_error=ErrorInfo(
        code="X", message="x", category=ErrorCategory.INTERNAL, retryable=False,
    )),
])
def test_empty_accounts_forces_disconnected(start):
    session = reduce(start, AccountsChanged(()), SEPOLIA)
    assert session.status is SessionStatus.DISCONNECTED
    assert session.account is None


def test_empty_accounts_keeps_known_chain():
    session = reduce(_connected(), AccountsChanged(()), SEPOLIA)
    assert session.chain_id == SEPOLIA


def test_empty_accounts_is_idempotent():
    once = reduce(_connected(), AccountsChanged(()), SEPOLIA)
    twice = reduce(once, AccountsChanged(()), SEPOLIA)
    assert once == twice


def test_account_switch_while_connected_keeps_status():
    session = reduce(_connected(), AccountsChanged((BOB,)), SEPOLIA)
    assert session.account == BOB
    assert session.status is SessionStatus.CONNECTED


def test_same_account_different_case_is_noop():
    start = _connected()
    session = reduce(start, AccountsChanged((Address(ALICE.lower()),)), SEPOLIA)
    assert session is start


def test_accounts_while_disconnected_ignored():
    session = reduce(WalletSession(), AccountsChanged((ALICE,)), SEPOLIA)
    assert session == WalletSession()


# ==============================================================================
# Chain events
# ==============================================================================


def test_chain_change_to_other_network_is_wrong_network():
    session = reduce(_connected(), ChainChanged(MAINNET), SEPOLIA)
    assert session.status is SessionStatus.WRONG_NETWORK
    assert session.account == ALICE


def test_chain_change_back_to_required_reconnects_and_clears_error():
    wrong = _apply(_connected(MAINNET), NetworkSwitchFailed(_error()))
    assert wrong.last_error is not None
    session = reduce(wrong, ChainChanged(SEPOLIA), SEPOLIA)
    assert session.status is SessionStatus.CONNECTED
    assert session.last_error is None


def test_chain_change_is_idempotent():
    once = reduce(_connected(), ChainChanged(MAINNET), SEPOLIA)
    assert reduce(once, ChainChanged(MAINNET), SEPOLIA) is once


def test_chain_change_while_disconnected_only_records_chain():
    session = reduce(WalletSession(), ChainChanged(MAINNET), SEPOLIA)
    assert session.status is SessionStatus.DISCONNECTED
    assert session.chain_id == MAINNET


def test_switch_failure_only_recorded_in_wrong_network():
    connected = _connected()
    assert reduce(connected, NetworkSwitchFailed(_error()), SEPOLIA) is connected

    wrong = reduce(_connected(MAINNET), NetworkSwitchFailed(_error()), SEPOLIA)
    assert wrong.status is SessionStatus.WRONG_NETWORK
    assert wrong.last_error.code == "USER_REJECTED"


# ==============================================================================
# Faults and disconnect
# ==============================================================================


def test_fault_moves_to_error_and_drops_account():
    session = reduce(_connected(), SessionFaulted(_error("INTERNAL_ERROR")), SEPOLIA)
    assert session.status is SessionStatus.ERROR
    assert session.account is None
    assert session.chain_id == SEPOLIA


def test_disconnect_resets_everything():
    assert reduce(_connected(MAINNET), DisconnectRequested(), SEPOLIA) == WalletSession()


def test_account_present_iff_connected_super_state():
    sessions = [
        WalletSession(),
        _connected(),
        _connected(MAINNET),
        reduce(WalletSession(), ConnectStarted(), SEPOLIA),
        _apply(WalletSession(), ConnectStarted(), ConnectFailed(_error())),
    ]
    for session in sessions:
        assert (session.account is not None) == session.is_connected


def test_probe_failure_recorded_on_disconnected():
    session = _apply(WalletSession(), ProbeFailed(_error("PROVIDER_REQUEST_FAILED")))
    assert session.status is SessionStatus.DISCONNECTED
    assert session.account is None
    assert session.last_error.code == "PROVIDER_REQUEST_FAILED"


def test_probe_failure_ignored_once_connected():
    session = _connected()
    assert _apply(session, ProbeFailed(_error())) == session


def test_connect_start_clears_probe_failure():
    session = _apply(WalletSession(), ProbeFailed(_error()), ConnectStarted())
    assert session.status is SessionStatus.CONNECTING
    assert session.last_error is None
