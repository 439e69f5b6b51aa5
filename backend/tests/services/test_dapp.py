"""Donation DApp wiring: end-to-end flow across session, submitter, ledger and view.

Tests:
    - start() restores an authorized wallet and loads the default (mirror) source
    - donate() confirms and then refreshes the on-chain list
    - A ledger that never shows the new donation ends stale, even when ON_CHAIN was never loaded
    - Missing wallet transport yields a fatal ERROR session, mirror still readable
"""

import httpx

from donatechain.config import Settings
from donatechain.core.domain_types import SessionStatus, SourceId, SubmissionState
from donatechain.core.fetch_state import Loaded
from donatechain.infrastructure.donation_contract import GET_ALL_DONATIONS, GET_DONATION_COUNT
from donatechain.infrastructure.mirror_client import MirrorClient
from donatechain.services.dapp import build_dapp

from tests.services.abi_payloads import DONOR_A, DONOR_B, donations_payload, sel, uint_payload
from tests.services.fake_wallet import CONTRACT, FakeWallet

MIRROR_BODY = {
    "success": True,
    "message": "ok",
    "data": {"transactions": [{
        "id": 1,
        "donor": "0x742d35Cc6634C0532925a3b844Bc9e7595f8bE21",
        "amount": "0.5",
        "currency": "ETH",
        "message": "hi",
        "timestamp": "2026-01-25T10:30:00Z",
    }]},
}


def _settings() -> Settings:
    return Settings(
        contract_address=CONTRACT,
        receipt_poll_interval_seconds=0.01,
        confirmation_timeout_seconds=1,
        read_after_write_attempts=2,
        read_after_write_interval_seconds=0,
    )


def _mirror() -> MirrorClient:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=MIRROR_BODY)),
        base_url="http://mirror.test/api",
    )
    return MirrorClient("http://mirror.test/api", client=http)


async def test_start_restores_session_and_loads_mirror():
    wallet = FakeWallet(authorized=True)
    dapp = build_dapp(wallet, _settings(), mirror=_mirror())
    try:
        await dapp.start()
        assert dapp.manager.session.status is SessionStatus.CONNECTED
        state = await dapp.view.refresh(SourceId.MIRROR)
        assert isinstance(state, Loaded)
        assert state.records[0].amount_wei == 500_000_000_000_000_000
    finally:
        await dapp.aclose()


async def test_donate_then_ledger_refreshed():
    wallet = FakeWallet(authorized=True)
    wallet.receipts["0x" + f"{1:064x}"] = {"status": "0x1"}
    wallet.call_results[sel(GET_ALL_DONATIONS)] = donations_payload([
        (DONOR_A, 10 ** 17, 1_769_337_000, "thanks"),
    ])
    wallet.call_results[sel(GET_DONATION_COUNT)] = uint_payload(0)
    dapp = build_dapp(wallet, _settings(), mirror=_mirror())
    try:
        await dapp.start()
        pending = await dapp.donate("0.1", "thanks")
        assert pending.state is SubmissionState.CONFIRMED
        chain_state = dapp.view.state(SourceId.ON_CHAIN)
        assert isinstance(chain_state, Loaded)
        assert not chain_state.stale
        assert chain_state.records[0].message == "thanks"
    finally:
        await dapp.aclose()


async def test_missing_wallet_is_fatal_but_mirror_works():
    dapp = build_dapp(None, _settings(), mirror=_mirror())
    try:
        await dapp.start()
        assert dapp.manager.session.status is SessionStatus.ERROR
        assert dapp.manager.session.last_error.code == "PROVIDER_UNAVAILABLE"
        state = await dapp.view.refresh(SourceId.MIRROR)
        assert isinstance(state, Loaded)
    finally:
        await dapp.aclose()


async def test_donate_unseen_on_unloaded_ledger_marks_stale():
    wallet = FakeWallet(authorized=True)
    wallet.receipts["0x" + f"{1:064x}"] = {"status": "0x1"}
    wallet.call_results[sel(GET_ALL_DONATIONS)] = donations_payload([
        (DONOR_A, 10 ** 17, 1_769_337_000, "older"),
        (DONOR_B, 2 * 10 ** 17, 1_769_337_100, "older too"),
    ])
    wallet.call_results[sel(GET_DONATION_COUNT)] = uint_payload(2)
    dapp = build_dapp(wallet, _settings(), mirror=_mirror())
    try:
        await dapp.start()
        assert dapp.view.active_source is SourceId.MIRROR
        pending = await dapp.donate("0.1", "new")
        assert pending.state is SubmissionState.CONFIRMED
        chain_state = dapp.view.state(SourceId.ON_CHAIN)
        assert isinstance(chain_state, Loaded)
        assert len(chain_state.records) == 2
        assert chain_state.stale
        assert wallet.count("eth_call") == 1 + _settings().read_after_write_attempts
    finally:
        await dapp.aclose()
