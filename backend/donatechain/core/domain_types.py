"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - Address wraps a 0x-prefixed hex string: never compare addresses case-sensitively
    - All valid states encoded as Enums: no raw string matching
    - ChainSpec is immutable and renders the wallet_addEthereumChain payload

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: log extras and API bodies are JSON)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Address = NewType("Address", str)
TxHash = NewType("TxHash", str)

WEI_PER_ETHER = 10 ** 18
ETHER_DECIMALS = 18


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality (checksum casing is cosmetic)."""
    if a is None or b is None:
        return a is b
    return a.lower() == b.lower()


# ─── Enums ───────────────────────────────────────────────────────

class SessionStatus(str, Enum):
    """Wallet session lifecycle states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    WRONG_NETWORK = "wrong_network"
    ERROR = "error"


class SubmissionState(str, Enum):
    """Donation transaction lifecycle: declaration order is the forward order."""
    VALIDATING = "validating"
    AWAITING_SIGNATURE = "awaiting_signature"
    BROADCASTING = "broadcasting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SourceId(str, Enum):
    """The two donation sources the reconciliation view can display."""
    ON_CHAIN = "on_chain"
    MIRROR = "mirror"


class SwitchResult(str, Enum):
    """Outcome of a chain switch/add request."""
    SUCCESS = "success"
    NOT_ADDED = "not_added"
    REJECTED = "rejected"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class ChainSpec:
    """Network description offered to the wallet when it does not know the chain."""
    chain_id: int
    chain_name: str
    rpc_urls: tuple[str, ...]
    block_explorer_urls: tuple[str, ...] = ()
    currency_name: str = "Ether"
    currency_symbol: str = "ETH"
    currency_decimals: int = ETHER_DECIMALS

    @property
    def hex_chain_id(self) -> str:
        return hex(self.chain_id)

    def to_wallet_params(self) -> dict:
        return {
            "chainId": self.hex_chain_id,
            "chainName": self.chain_name,
            "nativeCurrency": {
                "name": self.currency_name,
                "symbol": self.currency_symbol,
                "decimals": self.currency_decimals,
            },
            "rpcUrls": list(self.rpc_urls),
            "blockExplorerUrls": list(self.block_explorer_urls),
        }
