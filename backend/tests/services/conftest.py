"""Service test fixtures: scripted wallet, adapter and session manager.

Invariants:
    - Every test gets a fresh FakeWallet on Sepolia with ALICE not yet authorized
    - The manager is closed after each test (listeners detached)

Design Decisions:
    - Fake transport at the EIP-1193 boundary rather than mocking ProviderAdapter:
      error-code mapping and event plumbing stay under test
    - Receipt polling interval shrunk to keep confirmation tests fast
"""

import pytest

from donatechain.core.domain_types import ChainSpec
from donatechain.infrastructure.provider_adapter import ProviderAdapter
from donatechain.services.wallet_session_manager import WalletSessionManager

from tests.services.fake_wallet import SEPOLIA, FakeWallet


@pytest.fixture
def chain_spec() -> ChainSpec:
    return ChainSpec(
        chain_id=SEPOLIA,
        chain_name="Sepolia Testnet",
        rpc_urls=("https://rpc.sepolia.org",),
        block_explorer_urls=("https://sepolia.etherscan.io",),
    )


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def adapter(wallet) -> ProviderAdapter:
    return ProviderAdapter(wallet)


@pytest.fixture
async def manager(adapter, chain_spec):
    mgr = WalletSessionManager(adapter, chain_spec, receipt_poll_interval_seconds=0.01)
    yield mgr
    mgr.close()


@pytest.fixture
async def connected_manager(manager):
    await manager.connect()
    return manager
