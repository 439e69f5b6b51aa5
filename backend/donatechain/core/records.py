"""Donation Records: the single normalized shape for both donation sources.

Invariants:
    - amount_wei is an exact non-negative int; float amounts are never authoritative
    - timestamp is timezone-aware UTC
    - sequence is the 1-based position within the source, in source delivery order
    - Records are frozen; a refresh builds a new tuple, never edits one in place

Design Decisions:
    - One record type tagged by SourceId instead of per-source subclasses (ADR: tagged union)
    - Mirror amounts parsed with the same exact rule as user input (core.units.parse_ether)
    - Malformed mirror entries raise MirrorPayloadError: the whole batch fails, no partial lists
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from donatechain.core.domain_types import Address, SourceId
from donatechain.core.errors import MirrorPayloadError, ValidationError
from donatechain.core.units import format_ether, parse_ether

NATIVE_CURRENCY = "ETH"


@dataclass(frozen=True)
class DonationRecord:
    """A normalized donation, regardless of source."""

    source: SourceId
    sequence: int
    donor: Address
    amount_wei: int
    message: str
    timestamp: datetime
    tx_hash: str | None = None
    external_id: int | None = None
    currency: str = NATIVE_CURRENCY

    def __post_init__(self):
        if self.amount_wei < 0:
            raise ValueError(f"amount_wei must be non-negative, got {self.amount_wei}")
        if self.sequence < 1:
            raise ValueError(f"sequence is 1-based, got {self.sequence}")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

    @property
    def amount_eth(self) -> str:
        """Exact ether string for display."""
        return format_ether(self.amount_wei)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def record_from_chain(
    position: int, donor: str, amount_wei: int, timestamp_seconds: int, message: str,
) -> DonationRecord:
    """Build an ON_CHAIN record from one decoded getAllDonations() entry."""
    return DonationRecord(
        source=SourceId.ON_CHAIN,
        sequence=position,
        donor=Address(donor),
        amount_wei=int(amount_wei),
        message=message or "",
        timestamp=datetime.fromtimestamp(int(timestamp_seconds), tz=timezone.utc),
    )


def record_from_mirror(
    position: int,
    *,
    external_id: int,
    donor: str,
    amount: str,
    message: str | None,
    timestamp: datetime,
    tx_hash: str | None = None,
    currency: str = NATIVE_CURRENCY,
) -> DonationRecord:
    """Build a MIRROR record from one validated mirror transaction."""
    if currency.upper() != NATIVE_CURRENCY:
        raise MirrorPayloadError(
            f"transaction {external_id} uses unsupported currency '{currency}'",
        )
    try:
        amount_wei = parse_ether(amount, field="amount")
    except ValidationError as e:
        raise MirrorPayloadError(
            f"transaction {external_id} amount: {e.message}",
        ) from e
    return DonationRecord(
        source=SourceId.MIRROR,
        sequence=position,
        donor=Address(donor),
        amount_wei=amount_wei,
        message=message or "",
        timestamp=_as_utc(timestamp),
        tx_hash=tx_hash,
        external_id=external_id,
        currency=NATIVE_CURRENCY,
    )


def total_wei(records: tuple[DonationRecord, ...] | list[DonationRecord]) -> int:
    """Exact sum of record amounts."""
    return sum(r.amount_wei for r in records)
