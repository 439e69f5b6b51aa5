"""Donation Contract: ABI codec and read/write calls for the donation-tracking contract.

Invariants:
    - Amounts and timestamps decode as exact ints (uint256), never floats
    - Transport/RPC failures -> ContractUnreachableError (retryable)
    - Bad address, no bytecode, revert on a view call, empty or undecodable
      return data -> ContractMisconfiguredError (not retryable)
    - build_donate_tx() is pure: it only encodes, the signer broadcasts

Design Decisions:
    - eth-abi/eth-utils for encoding instead of a full web3 client: the transport is the
      wallet's EIP-1193 bridge, so only the ABI layer is needed
    - Function selectors derived from the signature text at import time
"""

import logging

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, is_hex_address, to_checksum_address

from donatechain.core.errors import (
    ContractMisconfiguredError, ContractUnreachableError, DonateChainError,
    ErrorContext, ProviderRequestError,
)
from donatechain.infrastructure.provider_adapter import ProviderAdapter

logger = logging.getLogger(__name__)

DONATION_TUPLE = "(address,uint256,uint256,string)"

GET_ALL_DONATIONS = "getAllDonations()"
GET_DONATION_COUNT = "getDonationCount()"
TOTAL_DONATIONS = "totalDonations()"
DONATE = "donate(string)"

# eth_call revert codes: 3 (geth "execution reverted"), -32015 (parity/openethereum)
_REVERT_CODES = frozenset({3, -32015})


def selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def encode_call(signature: str, arg_types: list[str] | None = None, args: tuple = ()) -> str:
    data = selector(signature)
    if arg_types:
        data += encode(arg_types, list(args))
    return "0x" + data.hex()


def encode_donate(message: str) -> str:
    return encode_call(DONATE, ["string"], (message,))


def _return_bytes(data_hex: str | None, function: str) -> bytes:
    if not data_hex or data_hex in ("0x", "0x0"):
        raise ContractMisconfiguredError(f"{function} returned no data")
    text = data_hex[2:] if data_hex.startswith("0x") else data_hex
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ContractMisconfiguredError(f"{function} returned non-hex data") from e


def decode_all_donations(data_hex: str | None) -> list[tuple[str, int, int, str]]:
    """Decode getAllDonations() output into (donor, amount_wei, timestamp_s, message)."""
    raw = _return_bytes(data_hex, GET_ALL_DONATIONS)
    try:
        (entries,) = decode([f"{DONATION_TUPLE}[]"], raw)
    except (DecodingError, ValueError, OverflowError) as e:
        raise ContractMisconfiguredError(
            f"{GET_ALL_DONATIONS} return data does not match the donation ABI: {e}",
        ) from e
    return [
        (to_checksum_address(donor), int(amount), int(timestamp), message)
        for donor, amount, timestamp, message in entries
    ]


def decode_uint(data_hex: str | None, function: str) -> int:
    raw = _return_bytes(data_hex, function)
    try:
        (value,) = decode(["uint256"], raw)
    except (DecodingError, ValueError) as e:
        raise ContractMisconfiguredError(f"{function} did not return a uint256") from e
    return int(value)


def _is_revert(e: ProviderRequestError) -> bool:
    return e.rpc_code in _REVERT_CODES or "revert" in e.message.lower()


class DonationContract:
    """Read/write access to one deployed donation contract through a provider."""

    def __init__(self, adapter: ProviderAdapter, address: str | None):
        if not address:
            raise ContractMisconfiguredError("no contract address configured")
        if not is_hex_address(address):
            raise ContractMisconfiguredError(f"'{address}' is not a valid address")
        self.adapter = adapter
        self.address = to_checksum_address(address)

    async def ensure_deployed(self) -> None:
        code = await self._guard("eth_getCode", self.adapter.get_code(self.address))
        if not code or code in ("0x", "0x0"):
            raise ContractMisconfiguredError(
                f"no contract deployed at {self.address} on this network",
            )

    async def get_all_donations(self) -> list[tuple[str, int, int, str]]:
        data = await self._view(GET_ALL_DONATIONS)
        if data in (None, "", "0x"):
            # A view returning nothing means there is no such function (or no code) here.
            await self.ensure_deployed()
        return decode_all_donations(data)

    async def get_donation_count(self) -> int:
        return decode_uint(await self._view(GET_DONATION_COUNT), GET_DONATION_COUNT)

    async def total_donations(self) -> int:
        return decode_uint(await self._view(TOTAL_DONATIONS), TOTAL_DONATIONS)

    def build_donate_tx(self, message: str, value_wei: int) -> dict:
        return {
            "to": self.address,
            "value": hex(value_wei),
            "data": encode_donate(message),
        }

    async def _view(self, signature: str) -> str:
        return await self._guard(
            signature, self.adapter.call(self.address, encode_call(signature)),
        )

    async def _guard(self, what: str, awaitable):
        ctx = ErrorContext(debug_info={"contract": self.address, "call": what})
        try:
            return await awaitable
        except ProviderRequestError as e:
            if _is_revert(e):
                raise ContractMisconfiguredError(
                    f"{what} reverted at {self.address}", context=ctx,
                ) from e
            logger.warning(f"Contract read {what} failed: {e.message}")
            raise ContractUnreachableError(e.message, context=ctx) from e
        except ContractMisconfiguredError:
            raise
        except DonateChainError as e:
            raise ContractUnreachableError(e.message, context=ctx) from e
