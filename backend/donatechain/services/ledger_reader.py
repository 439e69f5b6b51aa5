"""Ledger Reader: on-chain donation history via read-only contract calls.

Invariants:
    - Never prompts: only eth_call / eth_getCode / eth_chainId
    - Does not require a CONNECTED wallet, only a provider on the required chain
    - Reading on another chain needs an explicit LedgerOverride (inspection use, not default)
    - Records come back in contract insertion order, sequence 1..n
    - Failures classified: ContractUnreachableError (retry) vs ContractMisconfiguredError (reconfigure)

Design Decisions:
    - Chain id taken from the session snapshot when known, otherwise asked of the provider
    - Override may bring its own adapter (e.g. a JsonRpcTransport to a public RPC)
"""

import logging
from dataclasses import dataclass

from donatechain.core.domain_types import SourceId
from donatechain.core.errors import (
    ContractMisconfiguredError, ContractUnreachableError, DonateChainError,
    ProviderUnavailableError, WrongNetworkError,
)
from donatechain.core.records import DonationRecord, record_from_chain
from donatechain.infrastructure.donation_contract import DonationContract
from donatechain.infrastructure.provider_adapter import ProviderAdapter
from donatechain.services.wallet_session_manager import WalletSessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerOverride:
    """Explicit contract/network target; bypasses the required-chain check."""
    contract_address: str
    adapter: ProviderAdapter | None = None


class LedgerReader:
    """Reads the donation contract through the session's (read-capable) provider."""

    def __init__(self, manager: WalletSessionManager, contract_address: str | None):
        self.manager = manager
        self.contract_address = contract_address

    async def list_donations(
        self, override: LedgerOverride | None = None,
    ) -> tuple[DonationRecord, ...]:
        contract = await self._contract(override)
        entries = await contract.get_all_donations()
        try:
            records = tuple(
                record_from_chain(position, donor, amount, timestamp, message)
                for position, (donor, amount, timestamp, message)
                in enumerate(entries, start=1)
            )
        except (ValueError, OverflowError, OSError) as e:
            raise ContractMisconfiguredError(f"unreadable donation entry: {e}") from e
        logger.info(
            "On-chain donations loaded",
            extra={"source": SourceId.ON_CHAIN.value, "count": len(records)},
        )
        return records

    async def donation_count(self, override: LedgerOverride | None = None) -> int:
        contract = await self._contract(override)
        return await contract.get_donation_count()

    async def total_donations(self, override: LedgerOverride | None = None) -> int:
        """Total donated wei as tracked by the contract."""
        contract = await self._contract(override)
        return await contract.total_donations()

    async def _contract(self, override: LedgerOverride | None) -> DonationContract:
        if override is not None:
            adapter = override.adapter or self.manager.adapter
            if adapter is None:
                raise ProviderUnavailableError()
            return DonationContract(adapter, override.contract_address)

        adapter = self.manager.adapter
        if adapter is None:
            raise ProviderUnavailableError()
        if not self.contract_address:
            raise ContractMisconfiguredError("no contract address configured")

        chain_id = self.manager.session.chain_id
        if chain_id is None:
            try:
                chain_id = await adapter.get_chain_id()
            except DonateChainError as e:
                raise ContractUnreachableError(e.message) from e
        if chain_id != self.manager.required_chain_id:
            raise WrongNetworkError(self.manager.required_chain_id, chain_id)
        return DonationContract(adapter, self.contract_address)
