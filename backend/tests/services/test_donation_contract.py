"""Donation Contract: ABI codec and failure classification.

Tests:
    - getAllDonations() decodes to exact (donor, wei, seconds, message) tuples in order
    - Counters decode as uint256
    - No code / empty return / undecodable data / revert -> ContractMisconfiguredError
    - Transport failure -> ContractUnreachableError
    - Invalid address rejected at construction
"""

import pytest

from donatechain.core.errors import ContractMisconfiguredError, ContractUnreachableError
from donatechain.infrastructure.donation_contract import (
    DONATE, GET_ALL_DONATIONS, GET_DONATION_COUNT, TOTAL_DONATIONS,
    DonationContract, decode_all_donations, encode_donate,
)

from tests.services.abi_payloads import (
    DONOR_A, DONOR_B, donations_payload, sel as _sel, uint_payload,
)
from tests.services.fake_wallet import CONTRACT


@pytest.fixture
def contract(adapter) -> DonationContract:
    return DonationContract(adapter, CONTRACT)


def test_decode_preserves_order_and_exact_values():
    big = 10 ** 30 + 1
    data = donations_payload([
        (DONOR_A, big, 1_769_337_000, "first"),
        (DONOR_B, 1, 1_769_423_100, ""),
    ])
    decoded = decode_all_donations(data)
    assert [d[3] for d in decoded] == ["first", ""]
    assert decoded[0][1] == big
    assert decoded[0][0].lower() == DONOR_A
    assert decoded[1][2] == 1_769_423_100


def test_decode_empty_list():
    assert decode_all_donations(donations_payload([])) == []


@pytest.mark.parametrize("data", [None, "", "0x", "0xzz", "0x1234"])
def test_decode_garbage_is_misconfiguration(data):
    with pytest.raises(ContractMisconfiguredError):
        decode_all_donations(data)


def test_encode_donate_has_selector_and_message():
    data = encode_donate("hello")
    assert data.startswith(_sel(DONATE))
    assert "hello".encode().hex() in data


def test_invalid_address_rejected(adapter):
    with pytest.raises(ContractMisconfiguredError):
        DonationContract(adapter, "not-an-address")
    with pytest.raises(ContractMisconfiguredError):
        DonationContract(adapter, "")


async def test_get_all_donations(contract, wallet):
    wallet.call_results[_sel(GET_ALL_DONATIONS)] = donations_payload([
        (DONOR_A, 5 * 10 ** 17, 1_769_337_000, "gm"),
    ])
    entries = await contract.get_all_donations()
    assert entries[0][1] == 5 * 10 ** 17


async def test_counters(contract, wallet):
    wallet.call_results[_sel(GET_DONATION_COUNT)] = uint_payload(3)
    wallet.call_results[_sel(TOTAL_DONATIONS)] = uint_payload(26 * 10 ** 17)
    assert await contract.get_donation_count() == 3
    assert await contract.total_donations() == 26 * 10 ** 17


async def test_no_code_at_address(contract, wallet):
    with pytest.raises(ContractMisconfiguredError) as exc_info:
        await contract.get_all_donations()
    assert "no contract deployed" in exc_info.value.message


async def test_empty_return_with_code_is_misconfiguration(contract, wallet):
    wallet.code[CONTRACT.lower()] = "0x6080"
    with pytest.raises(ContractMisconfiguredError):
        await contract.get_all_donations()


async def test_revert_is_misconfiguration(contract, wallet):
    wallet.fail("eth_call", 3, message="execution reverted")
    with pytest.raises(ContractMisconfiguredError):
        await contract.get_donation_count()


async def test_transport_failure_is_unreachable(contract, wallet):
    wallet.fail("eth_call", None, message="connection reset")
    with pytest.raises(ContractUnreachableError) as exc_info:
        await contract.get_all_donations()
    assert exc_info.value.retryable


def test_build_donate_tx(contract):
    tx = contract.build_donate_tx("hi", 10 ** 17)
    assert tx["value"] == hex(10 ** 17)
    assert tx["data"] == encode_donate("hi")
    assert tx["to"].lower() == CONTRACT.lower()
